"""
Caching layer for the explorer API
Process-wide TTL cache owned by the aggregation services
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Cache entry with metadata"""

    key: str
    value: Any
    timestamp: float
    ttl: float
    hit_count: int = 0

    def is_fresh(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


class MemoryCache:
    """
    In-memory TTL cache

    Entries are never evicted: an expired entry is invisible to get() but is
    still returned by get_stale(), so callers can fall back to the last good
    value when a refresh fails.
    """

    def __init__(self, clock: Callable[[], float] = time.time, single_flight: bool = True):
        self.clock = clock
        self.single_flight_enabled = single_flight
        self.cache: Dict[str, CacheEntry] = {}
        self.stats = {"hits": 0, "misses": 0, "refreshes": 0}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if it has not expired"""
        entry = self.cache.get(key)
        if entry is None or not entry.is_fresh(self.clock()):
            self.stats["misses"] += 1
            return None

        entry.hit_count += 1
        self.stats["hits"] += 1
        return entry.value

    def get_stale(self, key: str) -> Optional[Any]:
        """Get the last stored value regardless of age"""
        entry = self.cache.get(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl: float = 300) -> None:
        """Set value in cache, overwriting any previous entry"""
        self.cache[key] = CacheEntry(
            key=key, value=value, timestamp=self.clock(), ttl=ttl, hit_count=0
        )
        self.stats["refreshes"] += 1
        logger.debug(f"Cache refreshed: {key} (ttl={ttl}s)")

    @contextmanager
    def single_flight(self, key: str) -> Iterator[None]:
        """
        Serialize refreshes of one key

        Concurrent cache misses on the same key wait here; the caller is
        expected to re-check get() once inside. With single flight disabled
        every caller refreshes and the last write wins.
        """
        if not self.single_flight_enabled:
            yield
            return

        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield

    def clear(self) -> None:
        """Clear all cache"""
        self.cache.clear()

    def get_stats(self) -> dict:
        """Get cache statistics"""
        now = self.clock()
        return {
            "size": len(self.cache),
            "fresh": sum(1 for entry in self.cache.values() if entry.is_fresh(now)),
            "hits": self.stats["hits"],
            "misses": self.stats["misses"],
            "refreshes": self.stats["refreshes"],
            "keys": list(self.cache.keys()),
        }
