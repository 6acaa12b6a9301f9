"""Read-through TTL cache for slow, rarely-changing reads.

Wraps an async fetch function. The value is fetched on first use and
reused until ``ttl`` seconds have passed or ``invalidate()`` is called.
Concurrent callers share a single fetch.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Generic, Optional, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class TTLCache(Generic[T]):
    """Time-stamped cache around one async fetch.

    Args:
        fetch: Async callable producing the value.
        ttl: Seconds a fetched value stays fresh.
        clock: Monotonic time source (injectable for tests).
        name: Label used in log messages.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[T]],
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ) -> None:
        self._fetch = fetch
        self._ttl = ttl
        self._clock = clock
        self._name = name
        self._value: Optional[T] = None
        self._fetched_at: Optional[float] = None
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def is_fresh(self) -> bool:
        if self._fetched_at is None:
            return False
        return self._clock() - self._fetched_at < self._ttl

    async def get(self) -> T:
        """Return the cached value, fetching it if missing or expired."""
        if self.is_fresh:
            return self._value  # type: ignore[return-value]
        async with self._lock:
            # Another caller may have refreshed while we waited.
            if self.is_fresh:
                return self._value  # type: ignore[return-value]
            generation = self._generation
            value = await self._fetch()
            # Invalidated mid-fetch: hand out the value but do not keep it.
            if generation != self._generation:
                log.debug("%s invalidated during fetch, not stored", self._name)
                return value
            self._value = value
            self._fetched_at = self._clock()
            log.debug("%s refreshed", self._name)
            return value

    def invalidate(self) -> None:
        """Drop the cached value so the next get() refetches."""
        self._generation += 1
        self._value = None
        self._fetched_at = None
        log.debug("%s invalidated", self._name)
