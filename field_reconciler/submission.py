"""
Flat submission row built from a snapshot for the downstream applications store.

The record keeps numbers as sanitized strings; this is the one place they are
coerced. Fields the store treats as optional become None when blank, the rest
default to 0.
"""

from __future__ import annotations

import math
from typing import Any

from .models import ApplicationSnapshot, CanonicalField

# (row column, source field)
_TEXT_COLUMNS: tuple[tuple[str, CanonicalField], ...] = (
    ("business_name", CanonicalField.BUSINESS_NAME),
    ("owner_name", CanonicalField.OWNER_NAME),
    ("email", CanonicalField.EMAIL),
    ("phone", CanonicalField.PHONE),
    ("address", CanonicalField.ADDRESS),
    ("ein", CanonicalField.EIN),
    ("business_type", CanonicalField.BUSINESS_TYPE),
    ("industry", CanonicalField.INDUSTRY),
)

_OPTIONAL_NUMBER_COLUMNS: tuple[tuple[str, CanonicalField], ...] = (
    ("years_in_business", CanonicalField.YEARS_IN_BUSINESS),
    ("number_of_employees", CanonicalField.NUMBER_OF_EMPLOYEES),
    ("annual_revenue", CanonicalField.ANNUAL_REVENUE),
)

_DEFAULTED_NUMBER_COLUMNS: tuple[tuple[str, CanonicalField], ...] = (
    ("monthly_revenue", CanonicalField.AVERAGE_MONTHLY_REVENUE),
    ("monthly_deposits", CanonicalField.AVERAGE_MONTHLY_DEPOSITS),
    ("existing_debt", CanonicalField.EXISTING_DEBT),
    ("credit_score", CanonicalField.CREDIT_SCORE),
    ("requested_amount", CanonicalField.REQUESTED_AMOUNT),
)


def build_submission_row(snapshot: ApplicationSnapshot) -> dict[str, Any]:
    """Convert a snapshot into the snake_case row the applications store expects."""
    fields = snapshot.record
    row: dict[str, Any] = {}

    for column, field in _TEXT_COLUMNS:
        row[column] = fields.get(field.value, "")

    for column, field in _OPTIONAL_NUMBER_COLUMNS:
        row[column] = to_number(fields.get(field.value, ""))

    for column, field in _DEFAULTED_NUMBER_COLUMNS:
        number = to_number(fields.get(field.value, ""))
        row[column] = 0 if number is None else number

    row["documents"] = list(snapshot.documents)
    return row


def to_number(text: str) -> int | float | None:
    """Parse a numeric string; integral values come back as int."""
    text = text.strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return int(value) if value.is_integer() else value
