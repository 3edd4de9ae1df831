"""
Provenance-aware merging of automated values into an application session.

Two automated producers and one human all write to the same record. The
merge policy per field is:

  1. Nothing usable incoming        → leave the field alone
  2. Field is empty                 → take the incoming value (automated)
  3. Field still holds exactly the
     last automated value           → refresh it with the incoming value
  4. Anything else                  → preserve; the operator owns it now

An operator edit is never recorded as such. It is detected because the
current value no longer equals the last automated value, so rule 3 stops
applying. Whichever producer answers first owns a field until the operator
touches it; the second producer passes the same untouched check.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .aliases import ALIAS_TABLE, build_key_index, get_value
from .exceptions import InvalidFieldValueError, UnknownFieldError
from .models import (
    SCALAR_FIELDS,
    ApplicationSnapshot,
    CanonicalField,
    FieldOutcome,
    LenderMatch,
    MergeAction,
    MergeReport,
    ProducerKind,
)
from .sanitizers import sanitize

logger = logging.getLogger(__name__)


@dataclass
class ProvenanceState:
    """Where a field's value came from."""

    is_automated: bool = False
    last_automated_value: str | None = None


class ApplicationSession:
    """The canonical record, its provenance, and the latest lender matches.

    Usage:
        session = ApplicationSession()
        session.merge_bag({"Business Name": "Acme LLC"}, ProducerKind.DOCUMENT_EXTRACTION)
        session.set_field("businessName", "Acme Industries")   # operator edit
        snapshot = session.snapshot()
    """

    def __init__(self, initial: Mapping[str, Any] | None = None):
        self.values: dict[CanonicalField, str] = {f: "" for f in SCALAR_FIELDS}
        self.documents: list[str] = []
        self.provenance: dict[CanonicalField, ProvenanceState] = {
            f: ProvenanceState() for f in SCALAR_FIELDS
        }
        self.lender_matches: list[LenderMatch] = []

        # Review-mode values carry no automated provenance, so rule 4 keeps them.
        for name, value in (initial or {}).items():
            field = resolve_field(name)
            if field is CanonicalField.DOCUMENTS:
                for document in _document_names(value):
                    self.add_document(document)
            elif value is not None:
                self.values[field] = str(value)

    # ─── Automated Path ─────────────────────────────────────────────

    def merge_incoming(
        self,
        field: CanonicalField,
        bag: Mapping[str, Any],
        index: dict[str, str] | None = None,
    ) -> FieldOutcome:
        """Merge one canonical field from a flat bag of producer values."""
        if field is CanonicalField.DOCUMENTS:
            return FieldOutcome(field=field, action=MergeAction.SKIPPED)

        incoming = sanitize(field, get_value(bag, field, index=index))
        current = self.values[field]

        if incoming is None:
            logger.debug("Skipped empty: %s", field.value)
            return FieldOutcome(field=field, action=MergeAction.SKIPPED, current=current)

        state = self.provenance[field]

        if not current.strip():
            action = MergeAction.FILLED
            logger.debug("Filled empty: %s -> %r", field.value, incoming)
        elif state.is_automated and current == state.last_automated_value:
            action = MergeAction.UPDATED
            logger.debug("Updated auto-filled: %s %r -> %r", field.value, current, incoming)
        else:
            logger.debug("Preserved user edit: %s (current: %r)", field.value, current)
            return FieldOutcome(
                field=field, action=MergeAction.PRESERVED, incoming=incoming, current=current
            )

        self.values[field] = incoming
        state.is_automated = True
        state.last_automated_value = incoming
        return FieldOutcome(field=field, action=action, incoming=incoming, current=incoming)

    def merge_bag(self, bag: Mapping[str, Any], source: ProducerKind) -> MergeReport:
        """Run merge_incoming for every aliased field of the record."""
        index = build_key_index(bag)
        report = MergeReport(source=source)

        for field in SCALAR_FIELDS:
            if not ALIAS_TABLE.get(field):
                continue
            report.outcomes.append(self.merge_incoming(field, bag, index=index))

        logger.info(
            "Merged %s payload: %d field(s) populated",
            source.value,
            len(report.populated_fields),
        )
        return report

    def replace_lender_matches(self, matches: list[LenderMatch]) -> None:
        """Lender-match lists are replaced wholesale, never merged."""
        self.lender_matches = list(matches)

    # ─── Operator Path ──────────────────────────────────────────────

    def set_field(self, name: str | CanonicalField, value: str) -> None:
        """Record an operator edit. Provenance is left as it was."""
        field = resolve_field(name)
        if field is CanonicalField.DOCUMENTS:
            raise UnknownFieldError(
                "Documents are added with add_document(), not set_field()",
                details={"field": field.value},
            )
        self.values[field] = value

    def add_document(self, name: str) -> None:
        name = name.strip()
        if name and name not in self.documents:
            self.documents.append(name)

    # ─── Read Side ──────────────────────────────────────────────────

    def is_automated(self, field: CanonicalField) -> bool:
        """True while the field still shows the value automation last wrote."""
        state = self.provenance.get(field)
        if state is None or not state.is_automated:
            return False
        return self.values[field] == state.last_automated_value

    def automated_fields(self) -> list[CanonicalField]:
        return [f for f in SCALAR_FIELDS if self.is_automated(f)]

    def snapshot(self) -> ApplicationSnapshot:
        """Immutable copy for downstream collaborators."""
        return ApplicationSnapshot(
            record={f.value: v for f, v in self.values.items()},
            documents=list(self.documents),
            automated_fields=[f.value for f in self.automated_fields()],
            lender_matches=list(self.lender_matches),
        )


def resolve_field(name: str | CanonicalField) -> CanonicalField:
    """Turn a field name into a CanonicalField or raise UnknownFieldError."""
    try:
        return CanonicalField(name)
    except ValueError:
        raise UnknownFieldError(
            f"'{name}' is not a canonical application field",
            details={"field": str(name), "valid": [f.value for f in CanonicalField]},
        ) from None


def _document_names(value: Any) -> list[str]:
    """Initial documents: None, one name, or a list of names."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return value
    raise InvalidFieldValueError(
        "documents must be a file name or a list of file names",
        details={"field": CanonicalField.DOCUMENTS.value, "type": type(value).__name__},
    )
