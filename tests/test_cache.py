"""Tests for cache.py — TTL expiry driven by an injected clock."""

from __future__ import annotations

import pytest

from dag_editor.cache import TTLCache


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestTTLCache:
    def test_get_before_expiry(self, clock):
        cache: TTLCache[str] = TTLCache(default_ttl=60, clock=clock)
        cache.set("user:1", "alice")
        clock.now = 60
        assert cache.get("user:1") == "alice"

    def test_get_after_expiry_evicts(self, clock):
        cache: TTLCache[str] = TTLCache(default_ttl=60, clock=clock)
        cache.set("user:1", "alice")
        clock.now = 60.5
        assert cache.get("user:1") is None
        assert cache.size() == 0

    def test_per_entry_ttl(self, clock):
        cache: TTLCache[str] = TTLCache(default_ttl=60, clock=clock)
        cache.set("short", "a", ttl=5)
        cache.set("long", "b")
        clock.now = 10
        assert cache.get("short") is None
        assert cache.get("long") == "b"

    def test_cleanup_sweeps_expired(self, clock):
        cache: TTLCache[int] = TTLCache(default_ttl=10, clock=clock)
        cache.set("a", 1)
        clock.now = 5
        cache.set("b", 2)
        clock.now = 12
        assert cache.cleanup() == 1
        assert cache.keys() == ["b"]

    def test_delete_and_clear(self, clock):
        cache: TTLCache[int] = TTLCache(clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.clear()
        assert cache.stats().size == 0

    def test_stats(self, clock):
        cache: TTLCache[int] = TTLCache(clock=clock)
        cache.set("a", 1)
        stats = cache.stats()
        assert stats.size == 1
        assert stats.keys == ["a"]

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            TTLCache(default_ttl=0)

    @pytest.mark.parametrize("ttl", [0, -5])
    def test_set_rejects_non_positive_ttl(self, clock, ttl):
        """An explicit TTL is never replaced by the default."""
        cache: TTLCache[int] = TTLCache(default_ttl=60, clock=clock)
        with pytest.raises(ValueError):
            cache.set("k", 1, ttl=ttl)
        assert cache.size() == 0

    def test_fractional_ttl_is_honoured(self, clock):
        cache: TTLCache[int] = TTLCache(default_ttl=60, clock=clock)
        cache.set("k", 1, ttl=0.5)
        clock.now = 1
        assert cache.get("k") is None
