#!/usr/bin/env python3
"""
Field Reconciler — Entry Point
==============================

Replays a typical intake session: an extraction payload arrives, a second one
refreshes the untouched fields, the operator corrects a value, a late payload
tries to overwrite it, and the lender-matching webhook answers.

Usage:
    python main.py
    LOG_LEVEL=DEBUG python main.py          # show every merge decision
"""

from __future__ import annotations

import logging
import sys

from dotenv import load_dotenv

from field_reconciler.config import Settings
from field_reconciler.matches import display_percent
from field_reconciler.models import MergeAction, MergeReport, ProducerKind
from field_reconciler.pipeline import IntakeEngine
from field_reconciler.submission import build_submission_row

load_dotenv()


# ─── Sample Producer Payloads — Messy on Purpose ────────────────────

FIRST_EXTRACTION = {
    "extractedData": {
        "Business Name:": "Acme LLC",
        "contactInfo": {"email_address": "owner@acme.test", "Phone": " (555) 010-2000 "},
        "Industry": "retail store",
        "entity_type": "limited liability company (LLC)",
        "Annual Revenue": "$1,250,000.00",
        "fico_score": "720 (good)",
    }
}

SECOND_EXTRACTION = (
    'Here is the JSON you asked for:\n'
    '```json\n{"business_name": "Acme Corp", "Credit Score": 735, "loan_amount": "$50,000"}\n```'
)

LATE_EXTRACTION = {"data": {"Business Name": "Acme Corp", "monthly_deposits": "41,000.5"}}

LENDER_WEBHOOK = {
    "output": (
        '{"ranked_matches":[{"id":"L1","score":0.82},'
        '{"lender_id":"L2","match_score":57},{"lender_id":"","score":99}]}'
    )
}


# ─── ANSI Color Constants ───────────────────────────────────────────

_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72

_ACTION_COLORS = {
    MergeAction.FILLED: _GREEN,
    MergeAction.UPDATED: _CYAN,
    MergeAction.PRESERVED: _YELLOW,
}


# ─── Pretty Printer ─────────────────────────────────────────────────


def print_merge(title: str, report: MergeReport) -> None:
    """Print the fields a merge pass touched (skipped fields are omitted)."""
    print(f"\n{_BOLD}{title}{_RESET}  {_DIM}({report.source.value}){_RESET}")
    for outcome in report.outcomes:
        if outcome.action is MergeAction.SKIPPED:
            continue
        color = _ACTION_COLORS[outcome.action]
        print(
            f"  {color}{outcome.action.value:<10}{_RESET}"
            f"{outcome.field.value:<24}{outcome.current}"
        )


def print_snapshot(engine: IntakeEngine) -> None:
    snapshot = engine.session.snapshot()
    automated = set(snapshot.automated_fields)

    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  CANONICAL RECORD{_RESET}")
    print(f"{'=' * _WIDTH}")
    for name, value in snapshot.record.items():
        if not value:
            continue
        marker = f"{_GREEN}auto{_RESET}" if name in automated else f"{_YELLOW}manual{_RESET}"
        print(f"  {name:<26}{value:<32}{marker}")
    print(f"{'─' * _WIDTH}")

    print(f"  {_BOLD}Lender matches{_RESET}")
    for match in snapshot.lender_matches:
        print(f"    {match.lender_id:<10}{match.match_score:<8}{display_percent(match.match_score)}%")
    print(f"{'─' * _WIDTH}")

    print(f"  {_BOLD}Submission row{_RESET}")
    for column, value in build_submission_row(snapshot).items():
        print(f"    {_DIM}{column}:{_RESET} {value!r}")
    print(f"{'=' * _WIDTH}\n")


# ─── Main ────────────────────────────────────────────────────────────


def main() -> int:
    """Replay the sample session and print what the engine decided."""
    logging.basicConfig(level=Settings.from_env().log_level)

    engine = IntakeEngine()
    extraction = engine.subscribe(ProducerKind.DOCUMENT_EXTRACTION)
    lender_webhook = engine.subscribe(ProducerKind.LENDER_MATCHING)

    extraction.publish(FIRST_EXTRACTION)
    extraction.publish(SECOND_EXTRACTION)
    first, second = engine.process_pending()
    print_merge("1. First extraction", first)
    print_merge("2. Refresh of untouched fields", second)

    print(f"\n{_BOLD}3. Operator edits businessName{_RESET}  {_DIM}→ Acme Industries{_RESET}")
    engine.session.set_field("businessName", "Acme Industries")

    extraction.publish(LATE_EXTRACTION)
    lender_webhook.publish(LENDER_WEBHOOK)
    late, _ = engine.process_pending()
    print_merge("4. Late extraction", late)

    print_snapshot(engine)
    return 0


if __name__ == "__main__":
    sys.exit(main())
