"""
Per-field value cleanup applied before a value may enter the record.

Every canonical field belongs to exactly one class:
  - integer   → digits only ("720 FICO" → "720")
  - decimal   → digits and one decimal point ("$12,345.67" → "12345.67")
  - text      → trimmed
  - enumerated → fuzzy-mapped onto the allowed options

A value that cleans down to nothing is ABSENT, never "clear the field".
"""

from __future__ import annotations

import re
from enum import Enum

from .models import CanonicalField
from .options import BUSINESS_TYPES, INDUSTRIES, INDUSTRY_FALLBACK, map_to_option

_NON_DIGIT = re.compile(r"[^0-9]")
_NON_DECIMAL = re.compile(r"[^0-9.]")


class FieldClass(str, Enum):
    INTEGER = "integer"
    DECIMAL = "decimal"
    TEXT = "text"
    ENUMERATED = "enumerated"


FIELD_CLASSES: dict[CanonicalField, FieldClass] = {
    CanonicalField.CREDIT_SCORE: FieldClass.INTEGER,
    CanonicalField.NUMBER_OF_EMPLOYEES: FieldClass.INTEGER,
    CanonicalField.ANNUAL_REVENUE: FieldClass.DECIMAL,
    CanonicalField.AVERAGE_MONTHLY_REVENUE: FieldClass.DECIMAL,
    CanonicalField.AVERAGE_MONTHLY_DEPOSITS: FieldClass.DECIMAL,
    CanonicalField.EXISTING_DEBT: FieldClass.DECIMAL,
    CanonicalField.REQUESTED_AMOUNT: FieldClass.DECIMAL,
    CanonicalField.YEARS_IN_BUSINESS: FieldClass.DECIMAL,
    CanonicalField.BUSINESS_NAME: FieldClass.TEXT,
    CanonicalField.OWNER_NAME: FieldClass.TEXT,
    CanonicalField.EMAIL: FieldClass.TEXT,
    CanonicalField.PHONE: FieldClass.TEXT,
    CanonicalField.ADDRESS: FieldClass.TEXT,
    CanonicalField.EIN: FieldClass.TEXT,
    CanonicalField.INDUSTRY: FieldClass.ENUMERATED,
    CanonicalField.BUSINESS_TYPE: FieldClass.ENUMERATED,
}

# (options, fallback) per enumerated field
FIELD_OPTIONS: dict[CanonicalField, tuple[tuple[str, ...], str | None]] = {
    CanonicalField.INDUSTRY: (INDUSTRIES, INDUSTRY_FALLBACK),
    CanonicalField.BUSINESS_TYPE: (BUSINESS_TYPES, None),
}


# ─── Public API ──────────────────────────────────────────────────────


def sanitize(field: CanonicalField, raw: str | None) -> str | None:
    """Clean *raw* according to the class of *field*.

    Returns:
        The cleaned string, or None when nothing usable remains.
    """
    if raw is None:
        return None

    field_class = FIELD_CLASSES.get(field, FieldClass.TEXT)

    if field_class is FieldClass.INTEGER:
        cleaned = clean_integer(raw)
    elif field_class is FieldClass.DECIMAL:
        cleaned = clean_decimal(raw)
    elif field_class is FieldClass.ENUMERATED:
        options, fallback = FIELD_OPTIONS[field]
        cleaned = map_to_option(raw, options, fallback)
    else:
        cleaned = raw.strip()

    return cleaned or None


def clean_integer(raw: str) -> str:
    """Strip every character that is not a digit."""
    return _NON_DIGIT.sub("", raw)


def clean_decimal(raw: str) -> str:
    """Keep digits and the first decimal point.

    Fragments after a second or later "." are folded into the fraction:
    "$12,345.67.89" → "12345.67.89" → "12345.6789". A result with no digit
    at all ("." or "..") is treated as empty.
    """
    cleaned = _NON_DECIMAL.sub("", raw)
    if not any(ch.isdigit() for ch in cleaned):
        return ""

    whole, dot, fraction = cleaned.partition(".")
    if not dot:
        return whole
    return f"{whole}.{fraction.replace('.', '')}"
