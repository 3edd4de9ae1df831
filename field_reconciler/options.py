"""
Fuzzy mapping of free text onto a closed set of options.

Producers describe an industry as "retail store", "RETAIL/ECOMMERCE" or
"Healthcare services"; the record only accepts one of a few fixed labels.

Strategy — a plain bag-of-tokens overlap, NOT edit distance:
  1. Exact match after token normalization (first option wins)
  2. Otherwise, the option sharing the most tokens with the input
     (strictly more wins, so the earlier option keeps ties)
  3. No shared token at all → the fallback, else the first option, else ""

Ties and the zero-overlap fallback are the observable behaviour, so the
heuristic stays this simple on purpose.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


# ─── Option Lists ────────────────────────────────────────────────────

INDUSTRIES: tuple[str, ...] = (
    "Retail",
    "Restaurant",
    "Healthcare",
    "Construction",
    "Professional Services",
    "Transportation",
    "Manufacturing",
    "Technology",
    "Real Estate",
    "Other",
)
INDUSTRY_FALLBACK = "Other"

BUSINESS_TYPES: tuple[str, ...] = (
    "Sole Proprietorship",
    "Partnership",
    "LLC",
    "Corporation",
    "S-Corporation",
)


# ─── Public API ──────────────────────────────────────────────────────


def token_normalize(text: str) -> str:
    """Lowercase, turn every run of non-alphanumerics into one space, trim."""
    return _NON_ALNUM.sub(" ", text.lower()).strip()


def map_to_option(
    raw: str, options: Sequence[str], fallback: str | None = None
) -> str:
    """Map free text onto one of *options*.

    Args:
        raw: The producer's text, e.g. "retail store".
        options: Allowed values in priority order.
        fallback: Returned when nothing overlaps (typically "Other").

    Returns:
        A member of options, the fallback, or "" when options is empty.
    """
    normalized = token_normalize(raw)

    # ── Step 1: Exact normalized match ──────────────────────────────
    for option in options:
        if token_normalize(option) == normalized:
            return option

    # ── Step 2: Token overlap ───────────────────────────────────────
    tokens = set(normalized.split())
    best_option: str | None = None
    best_score = 0

    for option in options:
        score = len(tokens & set(token_normalize(option).split()))
        if score > best_score:
            best_score = score
            best_option = option

    if best_option is not None:
        return best_option

    # ── Step 3: Zero overlap ────────────────────────────────────────
    if fallback:
        return fallback
    return options[0] if options else ""
