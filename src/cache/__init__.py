"""
Caching for transport reference data.

This package provides the in-memory expiring cache used by the mock
transport API.
"""

from .memory_cache import CacheKey, MemoryCache

__all__ = [
    'CacheKey',
    'MemoryCache',
]
