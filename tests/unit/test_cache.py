"""Unit tests for the payload cache."""

from __future__ import annotations

from printprep.cache import PayloadCache


class TestPayloadCache:
    def test_get_set(self) -> None:
        cache = PayloadCache()
        assert cache.get("a") is None
        cache.set("a", "data:image/png;base64,AAAA")
        assert cache.get("a") == "data:image/png;base64,AAAA"
        assert "a" in cache
        assert len(cache) == 1

    def test_lru_eviction(self) -> None:
        cache = PayloadCache(max_entries=2)
        cache.set("a", "1")
        cache.set("b", "2")
        cache.get("a")  # a becomes most recent
        cache.set("c", "3")
        assert "b" not in cache
        assert "a" in cache and "c" in cache

    def test_zero_capacity_stores_nothing(self) -> None:
        cache = PayloadCache(max_entries=0)
        cache.set("a", "1")
        assert len(cache) == 0

    def test_stats_and_clear(self) -> None:
        cache = PayloadCache(max_entries=5)
        cache.set("a", "1")
        cache.get("a")
        cache.get("missing")
        stats = cache.stats()
        assert stats == {
            "size": 1,
            "max_entries": 5,
            "hits": 1,
            "misses": 1,
            "keys": ["a"],
        }

        cache.clear()
        assert len(cache) == 0
        assert cache.stats()["hits"] == 0
