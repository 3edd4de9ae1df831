"""
Custom exception hierarchy for the reconciliation engine.

Payload content never raises: malformed producer output degrades to an
absent value. These exceptions cover caller mistakes only (unknown field
names, unknown sessions) so the HTTP layer can map them to status codes.
"""

from __future__ import annotations


class ReconciliationError(Exception):
    """Base exception for all reconciliation failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class UnknownFieldError(ReconciliationError):
    """The field name is not one of the canonical application fields."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("UNKNOWN_FIELD", message, details)


class SessionNotFoundError(ReconciliationError):
    """No intake session exists under the given id."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("SESSION_NOT_FOUND", message, details)


class InvalidFieldValueError(ReconciliationError):
    """A value has a shape the field cannot hold."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("INVALID_FIELD_VALUE", message, details)
