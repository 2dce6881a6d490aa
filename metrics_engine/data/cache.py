"""Time-keyed cache for macro series values.

One cache object is owned by a FredClient. The clock is injected so
expiry can be tested without sleeping.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Returned by get() for unknown or expired entries; a cached None is a
# valid value (the series exists but has no observation).
MISSING: Any = object()


@dataclass
class CacheEntry:
    value: float | None
    stored_at: float
    ttl: float


class MacroSeriesCache:
    """In-memory TTL cache keyed by series ID.

    Args:
        clock: Returns the current time in seconds. Defaults to
            time.monotonic.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def get(self, series_id: str) -> Any:
        """Cached value for ``series_id``, or MISSING if absent or expired."""
        entry = self._entries.get(series_id)
        if entry is None:
            self._misses += 1
            return MISSING
        if self._clock() - entry.stored_at >= entry.ttl:
            logger.debug("%s: cache entry expired", series_id)
            del self._entries[series_id]
            self._misses += 1
            return MISSING
        self._hits += 1
        return entry.value

    def set(self, series_id: str, value: float | None, ttl: float) -> None:
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self._entries[series_id] = CacheEntry(value, self._clock(), ttl)

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> dict[str, Any]:
        """Size, cached series IDs, and hit/miss counts."""
        return {
            "size": len(self._entries),
            "entries": sorted(self._entries),
            "hits": self._hits,
            "misses": self._misses,
        }
