"""
Tests for cache.py
TTL expiry, stale reads and single-flight refresh of MemoryCache
"""

import threading
import time

from cache import MemoryCache, CacheEntry


class FakeClock:
    """Manually advanced clock"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestCacheEntry:
    def test_fresh_within_ttl(self):
        entry = CacheEntry(key="k", value=1, timestamp=100.0, ttl=30)
        assert entry.is_fresh(129.9)
        assert not entry.is_fresh(130.0)


class TestMemoryCache:
    """Tests for in-memory TTL cache"""

    def test_basic_operations(self):
        """Test set and get"""
        cache = MemoryCache(clock=FakeClock())

        cache.set("key1", "value1", ttl=60)
        assert cache.get("key1") == "value1"

        # Non-existent key
        assert cache.get("nonexistent") is None

    def test_ttl_expiration(self):
        """Entries expire once ttl seconds have elapsed"""
        clock = FakeClock()
        cache = MemoryCache(clock=clock)
        cache.set("key1", "value1", ttl=30)

        clock.advance(29)
        assert cache.get("key1") == "value1"

        clock.advance(1)
        assert cache.get("key1") is None

    def test_expired_entry_still_available_as_stale(self):
        clock = FakeClock()
        cache = MemoryCache(clock=clock)
        cache.set("total", 42, ttl=600)

        clock.advance(3600)
        assert cache.get("total") is None
        assert cache.get_stale("total") == 42
        assert cache.get_stale("missing") is None

    def test_set_overwrites_and_restarts_ttl(self):
        clock = FakeClock()
        cache = MemoryCache(clock=clock)
        cache.set("key1", "old", ttl=30)

        clock.advance(25)
        cache.set("key1", "new", ttl=30)
        clock.advance(25)

        assert cache.get("key1") == "new"

    def test_falsy_values_are_cached(self):
        cache = MemoryCache(clock=FakeClock())
        cache.set("zero", 0, ttl=60)
        assert cache.get("zero") == 0

    def test_clear(self):
        """Test clearing all cache entries"""
        cache = MemoryCache(clock=FakeClock())
        cache.set("key1", "value1")
        cache.set("key2", "value2")

        cache.clear()

        assert cache.get("key1") is None
        assert cache.get_stale("key2") is None
        assert len(cache.cache) == 0

    def test_stats(self):
        """Test cache statistics"""
        clock = FakeClock()
        cache = MemoryCache(clock=clock)
        cache.set("key1", "value1", ttl=10)
        cache.set("key2", "value2", ttl=100)

        cache.get("key1")
        cache.get("key1")
        cache.get("nope")
        clock.advance(50)

        stats = cache.get_stats()
        assert stats["size"] == 2
        assert stats["fresh"] == 1
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["refreshes"] == 2
        assert set(stats["keys"]) == {"key1", "key2"}


class TestSingleFlight:
    """Concurrent refreshes of one key"""

    def test_only_one_refresh_runs(self):
        cache = MemoryCache(single_flight=True)
        calls = []
        start = threading.Barrier(5)

        def load():
            start.wait()
            if cache.get("k") is not None:
                return
            with cache.single_flight("k"):
                if cache.get("k") is not None:
                    return
                calls.append(1)
                time.sleep(0.05)
                cache.set("k", "v", ttl=60)

        threads = [threading.Thread(target=load) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert cache.get("k") == "v"

    def test_disabled_single_flight_does_not_block(self):
        cache = MemoryCache(single_flight=False)
        with cache.single_flight("k"):
            with cache.single_flight("k"):
                cache.set("k", 1)
        assert cache.get("k") == 1

    def test_distinct_keys_do_not_share_a_lock(self):
        cache = MemoryCache(single_flight=True)
        with cache.single_flight("a"):
            with cache.single_flight("b"):
                cache.set("b", 2)
        assert cache.get("b") == 2
