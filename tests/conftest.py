# ABOUTME: Shared test fixtures for the dust dashboard test suite.
# ABOUTME: Provides an Observation factory with sensible defaults.

from datetime import datetime, timezone

import pytest

from src.models import Observation


@pytest.fixture
def make_obs():
    """Factory for Observation models; unspecified fields stay missing."""

    def _make(station: str = "OERK", valid: datetime | None = None, **fields) -> Observation:
        return Observation(
            station=station,
            valid=valid or datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc),
            **fields,
        )

    return _make
