# mind_the_gap/services/cache.py: process-wide freshness cache shared by every representation
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional
import asyncio
import logging
import os
import time

logger = logging.getLogger("mind-the-gap")

STATS_CACHE_TTL = float(os.getenv("STATS_CACHE_TTL", str(24 * 60 * 60)))  # seconds


def stats_key(location: str) -> str:
    return f"stats:{location}"


def trend_key(metric: str, location: str) -> str:
    return f"trend:{metric}:{location}"


@dataclass(frozen=True)
class CacheEntry:
    payload: Any
    stored_at_ms: int


class FreshnessCache:
    """
    In-memory keyed store of (payload, fetch time) with a fixed freshness window.

    Stale entries are never evicted, only overwritten by the next `put`; the key
    space is bounded by locations x purposes. `once` collapses concurrent misses
    for the same key onto a single build.
    """

    def __init__(self, ttl: float = STATS_CACHE_TTL, clock: Optional[Callable[[], float]] = None) -> None:
        self.ttl_ms = int(ttl * 1000)
        self._clock = clock or time.time
        self._store: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, "asyncio.Task[Any]"] = {}

    def now(self) -> float:
        return self._clock()

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._store.get(key)

    def put(self, key: str, payload: Any) -> CacheEntry:
        entry = CacheEntry(payload=payload, stored_at_ms=self.now_ms())
        self._store[key] = entry
        return entry

    def is_valid(self, entry: CacheEntry) -> bool:
        return self.now_ms() - entry.stored_at_ms < self.ttl_ms

    def lookup(self, key: str) -> Optional[Any]:
        entry = self.get(key)
        if entry is None or not self.is_valid(entry):
            return None
        return entry.payload

    async def once(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda _t: self._release(key, _t))
        else:
            logger.info("cache join in-flight | key=%s", key)
        # shield: one caller going away must not cancel the shared build
        return await asyncio.shield(task)

    def _release(self, key: str, task: "asyncio.Task[Any]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # retrieve the outcome even when every waiter was cancelled
        if not task.cancelled():
            task.exception()

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return key in self._store
