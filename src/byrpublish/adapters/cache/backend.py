"""
Cache backend interface and shared types.

Entries record when they were fetched and when they expire, measured on the
backend's clock. Backends take the clock as a dependency so tests can move
time forward without sleeping.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """A cached value with its fetch time and optional expiry."""

    value: Any
    created_at: float = 0.0
    expires_at: float | None = None
    hit_count: int = 0

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def record_hit(self) -> None:
        self.hit_count += 1


@dataclass
class CacheStats:
    """Hit/miss counters for a cache backend."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    expirations: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        total = self.total_requests
        return self.hits / total if total else 0.0

    def record_hit(self) -> None:
        self.hits += 1

    def record_miss(self) -> None:
        self.misses += 1

    def record_set(self) -> None:
        self.sets += 1

    def record_delete(self) -> None:
        self.deletes += 1

    def record_eviction(self) -> None:
        self.evictions += 1

    def record_expiration(self) -> None:
        self.expirations += 1

    def reset(self) -> None:
        self.hits = self.misses = self.sets = 0
        self.deletes = self.evictions = self.expirations = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "total_requests": self.total_requests,
            "hit_rate": self.hit_rate,
        }


class CacheBackend(ABC):
    """Abstract key/value cache with per-entry TTL."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        ...

    @abstractmethod
    def get_entry(self, key: str) -> CacheEntry | None:
        """Return the live entry with its timestamps, or None."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value. ``ttl=None`` uses the backend default."""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    @property
    @abstractmethod
    def stats(self) -> CacheStats:
        ...
