"""Global pytest configuration."""

import os

import pytest

# Default store URL for code paths that build the global engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from travel_itinerary.config import get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached settings so every test reads the environment afresh."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
