"""
Cache Module - caching layer for the remote metadata snapshot.

- CacheBackend: Abstract interface for cache storage
- MemoryCache: In-memory LRU cache with TTL support and an injectable clock

Example:
    >>> from byrpublish.adapters.cache import MemoryCache
    >>> from byrpublish.adapters.feed import CachedMetadataFeed, HttpMetadataFeed
    >>>
    >>> cache = MemoryCache(default_ttl=300)
    >>> feed = CachedMetadataFeed(HttpMetadataFeed(), cache)
    >>>
    >>> # First call hits the network, later calls within 5 minutes do not
    >>> snapshot = feed.fetch()
"""

from .backend import CacheBackend, CacheEntry, CacheStats, Clock
from .memory import MemoryCache


__all__ = [
    "CacheBackend",
    "CacheEntry",
    "CacheStats",
    "Clock",
    "MemoryCache",
]
