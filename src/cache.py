# ABOUTME: Short-lived in-memory cache of classified observation sets keyed by query window.
# ABOUTME: Staleness is checked lazily on lookup against an injectable clock.

import logging
import time
from collections.abc import Callable

from pydantic import BaseModel

from src.models import Observation

logger = logging.getLogger(__name__)


class CacheEntry(BaseModel):
    observations: list[Observation]
    fetched_at: float


class ResultCache:
    """Maps a QueryKey to the observations fetched for it, for `ttl_seconds`."""

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> list[Observation] | None:
        """Return the cached observations, or None when absent or older than the TTL."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        age = self._clock() - entry.fetched_at
        if age >= self.ttl_seconds:
            logger.debug("Cache entry %s expired (age %.1fs)", key, age)
            self._entries.pop(key, None)
            return None
        return entry.observations

    def set(self, key: str, observations: list[Observation]) -> None:
        self._entries[key] = CacheEntry(observations=observations, fetched_at=self._clock())

    def __len__(self) -> int:
        return len(self._entries)
