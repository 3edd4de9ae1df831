"""
Field Reconciler — tolerant extraction and provenance-aware merging for
loan-application intake.

Architecture: Unwrap (any envelope) → Normalize keys → Sanitize values → Merge
Philosophy:  Automation may fill a field. Only the operator may own it.
"""

__version__ = "1.0.0"
