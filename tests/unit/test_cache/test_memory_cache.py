"""
Unit tests for the in-memory LRU cache.

A fake clock drives expiry so no test sleeps.
"""

import pytest

from src.cache.memory_cache import CacheKey, MemoryCache


class FakeClock:
    """Manually advanced time source."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return MemoryCache(max_size=3, default_ttl=60, clock=clock)


class TestMemoryCache:
    """Test MemoryCache behaviour."""

    def test_put_and_get(self, cache):
        cache.put("mtr:stations", ["CEN", "ADM"])

        assert cache.get("mtr:stations") == ["CEN", "ADM"]
        assert "mtr:stations" in cache
        assert len(cache) == 1

    def test_missing_key(self, cache):
        assert cache.get("missing") is None
        assert "missing" not in cache

    def test_entry_expires_at_ttl(self, cache, clock):
        """Test that an entry is gone once its lifetime has passed."""
        cache.put("key", "value")

        clock.advance(59)
        assert cache.get("key") == "value"

        clock.advance(1)
        assert cache.get("key") is None
        assert len(cache) == 0

    def test_custom_ttl(self, cache, clock):
        cache.put("short", 1, ttl=5)
        cache.put("long", 2)

        clock.advance(10)

        assert "short" not in cache
        assert cache.get("long") == 2

    def test_lru_eviction(self, cache):
        """Test that the least recently used entry is evicted past capacity."""
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("c", 3)
        cache.get("a")
        cache.put("d", 4)

        assert cache.keys() == ["c", "a", "d"]
        assert cache.get("b") is None

    def test_overwrite_refreshes_entry(self, cache, clock):
        cache.put("key", "old")
        clock.advance(50)
        cache.put("key", "new")
        clock.advance(50)

        assert cache.get("key") == "new"

    def test_delete(self, cache):
        cache.put("key", "value")

        assert cache.delete("key") is True
        assert cache.delete("key") is False

    def test_delete_by_prefix(self, cache):
        cache.put("bus:routes", [])
        cache.put("bus:stops:101", [])
        cache.put("mtr:stations", [])

        assert cache.delete_by_prefix(CacheKey.BUS_PREFIX) == 2
        assert cache.keys() == ["mtr:stations"]

    def test_cleanup_expired(self, cache, clock):
        cache.put("a", 1, ttl=10)
        cache.put("b", 2, ttl=100)
        clock.advance(20)

        assert cache.cleanup_expired() == 1
        assert cache.keys() == ["b"]

    def test_stats(self, cache):
        cache.put("a", 1)
        cache.get("a")
        cache.get("missing")

        stats = cache.get_stats()

        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5
        assert stats["size"] == 1
        assert stats["max_size"] == 3

    def test_clear(self, cache):
        cache.put("a", 1)
        cache.get("a")
        cache.clear()

        assert len(cache) == 0
        assert cache.get_stats()["hits"] == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            MemoryCache(max_size=0)


class TestCacheKey:
    """Test cache key generation."""

    def test_keys(self):
        assert CacheKey.mtr_stations_key() == "mtr:stations"
        assert CacheKey.bus_routes_key(None) == "bus:routes"
        assert CacheKey.bus_routes_key("KMB") == "bus:routes:KMB"
        assert CacheKey.bus_stops_key("A21") == "bus:stops:A21"

    def test_filter_values_kept_verbatim(self):
        """Test that differently cased or blank filters get their own keys."""
        assert CacheKey.bus_stops_key("1a") != CacheKey.bus_stops_key("1A")
        assert CacheKey.bus_stops_key("") != CacheKey.bus_stops_key(None)
        assert CacheKey.bus_stops_key("all") != CacheKey.bus_stops_key(None)
        assert CacheKey.bus_routes_key("") != CacheKey.bus_routes_key(None)

    def test_prefixes(self):
        """Test that reference data keys share their operator prefix."""
        assert CacheKey.mtr_stations_key().startswith(CacheKey.MTR_PREFIX)
        assert CacheKey.bus_routes_key("CTB").startswith(CacheKey.BUS_PREFIX)
        assert CacheKey.bus_stops_key(None).startswith(CacheKey.BUS_PREFIX)
