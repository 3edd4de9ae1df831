"""
Cleanup of raw lender-match entries.

Input is whatever array unwrap_match_list() found; each entry may use any of
several id/score spellings. Entries without a usable id or a finite score are
dropped. Order is preserved, duplicates are kept, and scores are NOT rescaled.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from .models import LenderMatch
from .unwrap import is_number, is_object, is_string

logger = logging.getLogger(__name__)

LENDER_ID_KEYS: tuple[str, ...] = ("lender_id", "id", "lenderId", "lenderID")
MATCH_SCORE_KEYS: tuple[str, ...] = (
    "match_score",
    "score",
    "matchScore",
    "qualification_score",
)


def clean_lender_matches(raw_entries: list[Any]) -> list[LenderMatch]:
    """Validate raw match entries into LenderMatch objects."""
    cleaned: list[LenderMatch] = []

    for entry in raw_entries:
        if not is_object(entry):
            continue

        lender_id = _first_present(entry, LENDER_ID_KEYS)
        score = _coerce_score(_first_present(entry, MATCH_SCORE_KEYS))

        if not is_string(lender_id) or not lender_id.strip() or score is None:
            continue
        cleaned.append(LenderMatch(lender_id=lender_id, match_score=score))

    dropped = len(raw_entries) - len(cleaned)
    if dropped:
        logger.info("Dropped %d lender match entr%s", dropped, "y" if dropped == 1 else "ies")
    return cleaned


def display_percent(score: float) -> int:
    """Render a score as a whole percentage for display.

    Producers disagree on scale, so anything at or below 1 is read as a
    fraction. Halves round up. The engine never applies this to stored scores.
    """
    percent = score * 100 if score <= 1 else score
    return math.floor(percent + 0.5)


# ─── Internal Helpers ────────────────────────────────────────────────


def _first_present(entry: dict[str, Any], keys: tuple[str, ...]) -> Any:
    """First value under *keys* that is not None (later keys are not consulted)."""
    for key in keys:
        value = entry.get(key)
        if value is not None:
            return value
    return None


def _coerce_score(value: Any) -> float | None:
    if not (is_number(value) or (is_string(value) and value.strip())):
        return None
    try:
        score = float(value)
    except (ValueError, OverflowError):
        return None
    return score if math.isfinite(score) else None
