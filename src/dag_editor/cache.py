"""In-memory TTL cache.

An explicitly constructed object with an injected clock. Expired entries are
evicted lazily on read and in bulk by ``cleanup()``; there is no background
timer, so the owner decides when a sweep happens.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

DEFAULT_TTL: float = 60.0  # seconds


@dataclass
class CacheEntry(Generic[T]):
    data: T
    timestamp: float
    ttl: float


@dataclass(frozen=True)
class CacheStats:
    size: int
    keys: list[str]


class TTLCache(Generic[T]):
    """Key/value cache whose entries expire ``ttl`` seconds after being set.

    Args:
        default_ttl: Lifetime for entries set without an explicit ``ttl``.
        clock: Returns the current time in seconds. Defaults to
            ``time.monotonic``; tests inject a fake.
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}

    def set(self, key: str, value: T, ttl: float | None = None) -> None:
        if ttl is None:
            ttl = self.default_ttl
        elif ttl <= 0:
            raise ValueError("ttl must be positive")
        self._entries[key] = CacheEntry(data=value, timestamp=self._clock(), ttl=ttl)

    def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry, self._clock()):
            del self._entries[key]
            return None
        return entry.data

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._expired(entry, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def size(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)

    def stats(self) -> CacheStats:
        return CacheStats(size=self.size(), keys=self.keys())

    @staticmethod
    def _expired(entry: CacheEntry[T], now: float) -> bool:
        return now - entry.timestamp > entry.ttl
