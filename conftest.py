"""Pytest configuration — ensures the project root is importable."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from field_reconciler.merge import ApplicationSession  # noqa: E402


@pytest.fixture
def session() -> ApplicationSession:
    """A fresh, empty intake session."""
    return ApplicationSession()
