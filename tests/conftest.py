"""Shared fixtures for the split ledger tests."""

import pytest

from splitledger.config import get_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    """Every test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
