"""Process-local TTL cache for trending responses, keyed by (category, limit)."""

from __future__ import annotations

import os
import time
from typing import Any, Callable, Optional

DEFAULT_TTL_SECONDS = 300.0


def ttl_from_env() -> float:
    raw = os.getenv("TRENDING_CACHE_TTL_SECONDS", "").strip()
    if not raw:
        return DEFAULT_TTL_SECONDS
    try:
        return max(0.0, float(raw))
    except ValueError:
        return DEFAULT_TTL_SECONDS


class TrendingCache:
    """In-memory cache owned by the app instance.

    Entries expire lazily: a stale entry is reported as a miss and left in place
    until the next ``put`` for the same key overwrites it. Concurrent writers
    race and the last write wins.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, int], tuple[float, Any]] = {}

    def get(self, category: str, limit: int) -> Optional[Any]:
        entry = self._entries.get((category, limit))
        if entry is None:
            return None
        stored_at, payload = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            return None
        return payload

    def put(self, category: str, limit: int, payload: Any) -> None:
        self._entries[(category, limit)] = (self._clock(), payload)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
