"""
In-memory LRU cache with expiry.

Holds transport reference data (stations, bus routes, stops) between
requests so repeated lookups skip the simulated network round trip.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple
from collections import OrderedDict
import time
import threading
import logging

logger = logging.getLogger(__name__)


class MemoryCache:
    """Thread-safe LRU cache with TTL support."""

    def __init__(
        self,
        max_size: int = 256,
        default_ttl: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize memory cache.

        Args:
            max_size: Maximum number of entries kept
            default_ttl: Default time-to-live in seconds
            clock: Time source in seconds, replaceable in tests
        """
        if max_size <= 0:
            raise ValueError(f"Cache size must be positive: {max_size}")

        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """
        Get an entry.

        Returns:
            Cached value, or None when missing or expired
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self._misses += 1
                logger.debug(f"Cache entry expired: {key}")
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return value

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store an entry, evicting the least recently used past capacity."""
        with self._lock:
            lifetime = self.default_ttl if ttl is None else ttl
            self._entries[key] = (value, self._clock() + lifetime)
            self._entries.move_to_end(key)

            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted cache key: {evicted}")

    def __contains__(self, key: str) -> bool:
        """Check whether a live entry exists without counting a hit."""
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and self._clock() < entry[1]

    def delete(self, key: str) -> bool:
        """Delete an entry, returning whether it existed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_by_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with prefix."""
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def clear(self) -> None:
        """Drop all entries and reset statistics."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def cleanup_expired(self) -> int:
        """
        Remove expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]

            if expired:
                logger.debug(f"Cleaned up {len(expired)} expired cache entries")
            return len(expired)

    def keys(self) -> List[str]:
        """Keys currently stored, least recently used first."""
        with self._lock:
            return list(self._entries.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        """Get hit/miss statistics."""
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": (self._hits / total) if total > 0 else 0,
            }


class CacheKey:
    """
    Helper class for generating consistent cache keys.

    Filter values are used verbatim, so every distinct argument gets its
    own entry and an unfiltered list never shares a key with a filtered one.
    """

    MTR_PREFIX = "mtr:"
    BUS_PREFIX = "bus:"

    @classmethod
    def mtr_stations_key(cls) -> str:
        """Key for the MTR station list."""
        return f"{cls.MTR_PREFIX}stations"

    @classmethod
    def bus_routes_key(cls, company: Optional[str]) -> str:
        """Key for bus routes, optionally filtered by operator."""
        if company is None:
            return f"{cls.BUS_PREFIX}routes"
        return f"{cls.BUS_PREFIX}routes:{company}"

    @classmethod
    def bus_stops_key(cls, route_number: Optional[str]) -> str:
        """Key for bus stops, optionally filtered by route."""
        if route_number is None:
            return f"{cls.BUS_PREFIX}stops"
        return f"{cls.BUS_PREFIX}stops:{route_number}"

    @classmethod
    def snapshot_key(cls) -> str:
        """Key for a saved transport state snapshot."""
        return "snapshot:transport"
