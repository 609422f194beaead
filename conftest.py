"""
Root-level shared test fixtures.

Inherited by every test suite that runs from the repo root.
"""

from __future__ import annotations

import pytest


@pytest.fixture
def clean_env(monkeypatch):
    """Remove vaultkeeper env vars that leak between tests."""
    for key in [
        "VAULTKEEPER_BACKEND_URL",
        "VAULTKEEPER_BACKEND_TIMEOUT",
        "VAULTKEEPER_IMPORT_SEPARATOR",
        "VAULTKEEPER_IMPORT_LABEL_PATTERN",
        "VAULTKEEPER_IMPORT_LABEL_START",
        "VAULTKEEPER_BULK_MAX_COUNT",
        "VAULTKEEPER_FUZZY_THRESHOLD",
        "VAULTKEEPER_LOG_LEVEL",
        "VAULTKEEPER_PASSWORD",
    ]:
        monkeypatch.delenv(key, raising=False)
