"""
Pydantic models for the canonical application record and its satellites.

The record itself is deliberately stringly-typed: every field is stored as the
sanitized text the operator would see, and numbers stay numeric strings until
a downstream collaborator coerces them. Only the hand-off types live here.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ─── Canonical Fields ───────────────────────────────────────────────


class CanonicalField(str, Enum):
    """The fixed set of business attributes the engine recognizes."""

    BUSINESS_NAME = "businessName"
    OWNER_NAME = "ownerName"
    EMAIL = "email"
    PHONE = "phone"
    ADDRESS = "address"
    EIN = "ein"
    BUSINESS_TYPE = "businessType"
    INDUSTRY = "industry"
    YEARS_IN_BUSINESS = "yearsInBusiness"
    NUMBER_OF_EMPLOYEES = "numberOfEmployees"
    ANNUAL_REVENUE = "annualRevenue"
    AVERAGE_MONTHLY_REVENUE = "averageMonthlyRevenue"
    AVERAGE_MONTHLY_DEPOSITS = "averageMonthlyDeposits"
    EXISTING_DEBT = "existingDebt"
    CREDIT_SCORE = "creditScore"
    REQUESTED_AMOUNT = "requestedAmount"
    DOCUMENTS = "documents"


# Every field except the document list holds a single string.
SCALAR_FIELDS: tuple[CanonicalField, ...] = tuple(
    f for f in CanonicalField if f is not CanonicalField.DOCUMENTS
)


# ─── Producers & Merge Outcomes ─────────────────────────────────────


class ProducerKind(str, Enum):
    """Which automated source a payload came from."""

    DOCUMENT_EXTRACTION = "document_extraction"
    FORM_WEBHOOK = "form_webhook"
    LENDER_MATCHING = "lender_matching"


class MergeAction(str, Enum):
    """What a single merge pass did to one field."""

    FILLED = "FILLED"  # Field was empty, automated value written
    UPDATED = "UPDATED"  # Untouched automated value refreshed
    PRESERVED = "PRESERVED"  # Operator or initial value kept as-is
    SKIPPED = "SKIPPED"  # Payload had nothing usable for this field


class FieldOutcome(BaseModel):
    """The result of merging one canonical field."""

    field: CanonicalField
    action: MergeAction
    incoming: str | None = None  # Sanitized candidate, None when absent
    current: str = ""  # Field value after the merge


class MergeReport(BaseModel):
    """Per-field outcomes of merging one field-bag payload into a session."""

    source: ProducerKind
    outcomes: list[FieldOutcome] = Field(default_factory=list)

    @property
    def populated_fields(self) -> list[CanonicalField]:
        """Fields written by this pass (filled or refreshed)."""
        return [
            o.field
            for o in self.outcomes
            if o.action in (MergeAction.FILLED, MergeAction.UPDATED)
        ]


# ─── Lender Matches ─────────────────────────────────────────────────


class LenderMatch(BaseModel):
    """One cleaned entry from a lender-matching webhook.

    The score's scale (0-1 fraction or 0-100 percentage) depends on the
    producer and is passed through untouched.
    """

    model_config = ConfigDict(frozen=True)

    lender_id: str
    match_score: float


# ─── Snapshot (hand-off to downstream collaborators) ────────────────


class ApplicationSnapshot(BaseModel):
    """Immutable copy of a session handed to downstream collaborators."""

    model_config = ConfigDict(frozen=True)

    record: dict[str, str] = Field(default_factory=dict)
    documents: list[str] = Field(default_factory=list)
    automated_fields: list[str] = Field(default_factory=list)
    lender_matches: list[LenderMatch] = Field(default_factory=list)
