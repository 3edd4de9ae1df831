"""
Key normalization and alias lookup.

Producers spell the same field a dozen ways: "Annual Revenue", "annual_revenue",
"annualRevenue", "Annual Revenue:". Rather than branching per field, every
accepted spelling lives in one ordered table and a single lookup walks it.
Alias order is priority: when a payload carries two spellings of the same
field, the one listed first wins.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from .models import CanonicalField
from .unwrap import scalar_text

_SEPARATORS = re.compile(r"[\s_]+")


# ─── Alias Table ─────────────────────────────────────────────────────

ALIAS_TABLE: dict[CanonicalField, tuple[str, ...]] = {
    CanonicalField.BUSINESS_NAME: (
        "Business Name", "business_name", "businessName",
        "company", "Company Name", "company_name",
    ),
    CanonicalField.OWNER_NAME: (
        "Owner Name", "owner_name", "ownerName",
        "name", "Name", "full_name", "Full Name",
    ),
    CanonicalField.EMAIL: (
        "Email", "email", "email_address", "emailAddress", "contact_email",
    ),
    CanonicalField.PHONE: (
        "Phone", "phone", "phone_number", "phoneNumber",
        "contact_phone", "telephone",
    ),
    CanonicalField.ADDRESS: (
        "Business Address", "business_address", "businessAddress",
        "address", "Address", "location",
    ),
    CanonicalField.EIN: (
        "EIN", "ein", "tax_id", "taxId", "employer_identification_number",
    ),
    CanonicalField.BUSINESS_TYPE: (
        "Business Type", "business_type", "businessType",
        "company_type", "entity_type",
    ),
    CanonicalField.INDUSTRY: (
        "Industry", "industry", "business_industry", "sector", "business_sector",
    ),
    CanonicalField.YEARS_IN_BUSINESS: (
        "Years in Business", "years_in_business", "yearsInBusiness",
        "business_age", "company_age",
    ),
    CanonicalField.NUMBER_OF_EMPLOYEES: (
        "Number of Employees", "number_of_employees", "numberOfEmployees",
        "employee_count", "staff_count",
    ),
    CanonicalField.ANNUAL_REVENUE: (
        "Annual Revenue", "annual_revenue", "annualRevenue",
        "yearly_revenue", "revenue",
    ),
    CanonicalField.AVERAGE_MONTHLY_REVENUE: (
        "Average Monthly Revenue", "average_monthly_revenue",
        "averageMonthlyRevenue", "monthly_revenue",
    ),
    CanonicalField.AVERAGE_MONTHLY_DEPOSITS: (
        "Average Monthly Deposits", "average_monthly_deposits",
        "averageMonthlyDeposits", "monthly_deposits",
    ),
    CanonicalField.EXISTING_DEBT: (
        "Existing Debt", "existing_debt", "existingDebt", "current_debt", "debt",
    ),
    CanonicalField.CREDIT_SCORE: (
        "Credit Score", "credit_score", "creditScore", "fico_score", "credit_rating",
    ),
    CanonicalField.REQUESTED_AMOUNT: (
        "Requested Amount", "requested_amount", "requestedAmount",
        "loan_amount", "funding_amount",
    ),
    # Filled from uploads, never from producer payloads.
    CanonicalField.DOCUMENTS: (),
}


# ─── Public API ──────────────────────────────────────────────────────


def normalize_key(key: str) -> str:
    """Collapse a raw key to its comparison token.

    "Annual Revenue:", "annual_revenue" and "annualRevenue" all become
    "annualrevenue". Trailing colons are stripped after separators are
    removed, so the result is stable under repeated application.
    """
    return _SEPARATORS.sub("", key.lower()).rstrip(":")


def build_key_index(bag: Mapping[str, Any]) -> dict[str, str]:
    """Map normalized key → string value for every non-empty scalar in *bag*.

    When two raw keys normalize to the same token, the later one wins.
    """
    index: dict[str, str] = {}
    for key, value in bag.items():
        text = scalar_text(value)
        if text is None or not text.strip():
            continue
        index[normalize_key(str(key))] = text
    return index


def get_value(
    bag: Mapping[str, Any],
    field: CanonicalField,
    aliases: Sequence[str] | None = None,
    index: dict[str, str] | None = None,
) -> str | None:
    """Find the first non-empty value for *field* in a flat key/value bag.

    For each alias, in priority order:
      1. exact key
      2. the alias with a trailing colon ("Credit Score:")
      3. normalized lookup across every key in the bag

    Args:
        bag: Flat mapping from raw producer keys to values.
        field: The canonical field to resolve.
        aliases: Override the alias list from ALIAS_TABLE.
        index: A prebuilt build_key_index(bag), reused across fields.

    Returns:
        The raw (unsanitized) string value, or None if no alias matched.
    """
    if aliases is None:
        aliases = ALIAS_TABLE.get(field, ())
    if index is None:
        index = build_key_index(bag)

    for alias in aliases:
        for candidate in (bag.get(alias), bag.get(f"{alias}:")):
            text = scalar_text(candidate)
            if text is not None and text.strip():
                return text

        normalized = index.get(normalize_key(alias))
        if normalized is not None:
            return normalized

    return None
