# utils/request_cache.py
"""
Request-scoped memoization cache for the batch pipeline

Rows inside a chunk run concurrently, and a dataset often repeats the same
text. RequestCache keys results by content hash and provides:
  - Hash-level caching: each distinct cleaned text is analyzed at most once
  - In-progress deduplication: if row A is computing a hash that row B also
    needs, row B waits for row A's result instead of calling the agents again

Lifecycle:
  - Created fresh by the batch controller for exactly one request
  - Passed by reference to the rows of that request only
  - Cleared when the request's stream finishes

NOT shared across requests and never held at module level.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Generic, Optional, Tuple, TypeVar

from utils.logger import risk_logger

V = TypeVar("V")


class RequestCache(Generic[V]):
    """
    Hash -> result memo with single-flight computation per key.

    store_if decides which computed values are kept; values it rejects
    (e.g. failed rows) are handed to their caller but not memoized, so the
    next occurrence of that hash computes again.
    """

    def __init__(self, store_if: Optional[Callable[[V], bool]] = None):
        self._entries: Dict[str, V] = {}
        # Keys currently being computed -- waiters get the Event
        self._in_progress: Dict[str, asyncio.Event] = {}
        # Protects _entries and _in_progress from concurrent modification
        self._lock = asyncio.Lock()
        self._store_if = store_if or (lambda value: True)
        # Counters
        self._hits = 0
        self._misses = 0
        self._wait_hits = 0

    async def get_or_compute(self, key: str, compute: Callable[[], Awaitable[V]]) -> Tuple[V, bool]:
        """
        Return (value, from_cache) for key, computing it at most once at a time.

          1. If already cached -> return cached value
          2. If another task is computing it -> wait, then re-check
          3. Otherwise -> compute, store (if store_if allows) and wake waiters
        """
        waited = False
        while True:
            async with self._lock:
                cached = self._entries.get(key)
                if cached is not None:
                    if waited:
                        self._wait_hits += 1
                    else:
                        self._hits += 1
                    return cached, True

                event = self._in_progress.get(key)
                if event is None:
                    self._in_progress[key] = asyncio.Event()
                    self._misses += 1
                    break

            waited = True
            await event.wait()

        value: Optional[V] = None
        try:
            value = await compute()
            return value, False
        finally:
            async with self._lock:
                if value is not None and self._store_if(value):
                    # Last writer wins; concurrent writers hold interchangeable results
                    self._entries[key] = value
                self._in_progress.pop(key).set()

    def peek(self, key: str) -> Optional[V]:
        return self._entries.get(key)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    @property
    def stats(self) -> Dict[str, int]:
        return {
            "cache_hits": self._hits + self._wait_hits,
            "cache_misses": self._misses,
            "wait_hits": self._wait_hits,
            "cached_entries": len(self._entries),
        }

    def get_cache_summary(self) -> str:
        """Human-readable cache summary for logging."""
        total_requests = self._hits + self._misses + self._wait_hits
        if total_requests == 0:
            return "RequestCache: No lookups"

        hit_rate = (self._hits + self._wait_hits) / total_requests * 100
        return (
            f"RequestCache summary: {total_requests} lookups, "
            f"{self._hits} cache hits, {self._wait_hits} wait hits, "
            f"{self._misses} computed "
            f"({hit_rate:.0f}% deduplication rate)"
        )

    def clear(self):
        """Drop all entries at the end of the request."""
        risk_logger.logger.info(self.get_cache_summary())
        self._entries.clear()
