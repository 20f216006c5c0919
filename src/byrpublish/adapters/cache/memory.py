"""
In-memory LRU cache with TTL expiry.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Any

from .backend import CacheBackend, CacheEntry, CacheStats, Clock


class MemoryCache(CacheBackend):
    """
    Thread-safe in-process cache.

    Expired entries are dropped lazily on read. When full, the least
    recently used entry is evicted.
    """

    DEFAULT_TTL = 300.0

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: float | None = DEFAULT_TTL,
        clock: Clock = time.monotonic,
    ):
        """
        Args:
            max_size: Maximum number of entries kept
            default_ttl: Seconds until expiry when set() gets no ttl; None never expires
            clock: Monotonic seconds source
        """
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self._stats = CacheStats()
        self.logger = logging.getLogger("MemoryCache")

    def get_entry(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats.record_miss()
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._stats.record_expiration()
                self._stats.record_miss()
                self.logger.debug(f"Expired cache entry {key}")
                return None
            self._entries.move_to_end(key)
            entry.record_hit()
            self._stats.record_hit()
            return entry

    def get(self, key: str) -> Any | None:
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(
                value=value,
                created_at=now,
                expires_at=now + ttl if ttl is not None else None,
            )
            self._entries.move_to_end(key)
            self._stats.record_set()
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self._stats.record_eviction()
                self.logger.debug(f"Evicted cache entry {evicted}")

    def delete(self, key: str) -> bool:
        with self._lock:
            if key in self._entries:
                del self._entries[key]
                self._stats.record_delete()
                return True
            return False

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def stats(self) -> CacheStats:
        return self._stats
