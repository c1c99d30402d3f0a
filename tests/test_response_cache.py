"""Tests for the response cache and its graceful degradation."""

import pytest

from hotel_ai.cache.response_cache import InMemoryCacheBackend, ResponseCache
from tests.conftest import BrokenCacheBackend


@pytest.fixture
def cache():
    return ResponseCache(InMemoryCacheBackend(max_entries=10), ttl_seconds=60, timeout_seconds=0.05)


class TestResponseCache:
    """Normal get/set behaviour over the in-memory backend."""

    @pytest.mark.asyncio
    async def test_set_then_get(self, cache):
        payload = {"message": "hi", "hotels": [{"id": "hotel-001"}]}
        assert await cache.set("search:v1:abc:top5", payload) is True
        assert await cache.get("search:v1:abc:top5") == payload

    @pytest.mark.asyncio
    async def test_miss_returns_none_and_counts(self, cache):
        assert await cache.get("search:v1:missing:top5") is None
        assert cache.get_stats()["misses"] == 1

    @pytest.mark.asyncio
    async def test_last_write_wins(self, cache):
        await cache.set("k", {"message": "first"})
        await cache.set("k", {"message": "second"})
        assert (await cache.get("k"))["message"] == "second"

    @pytest.mark.asyncio
    async def test_expired_entry_is_a_miss(self, cache):
        await cache.set("k", {"message": "old"}, ttl=-1)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_a_miss(self, cache):
        await cache.backend.set("k", "{not json", 60)
        assert await cache.get("k") is None
        assert cache.get_stats()["errors"] == 1

    @pytest.mark.asyncio
    async def test_invalidate_and_purge(self, cache):
        await cache.set("search:v1:a:top5", {"message": "a"})
        await cache.set("search:v1:b:top5", {"message": "b"})
        await cache.set("hotels:v1:c:top5", [])

        assert await cache.invalidate("search:v1:a:top5") is True
        assert await cache.purge("search:v1:*") == 1
        assert await cache.get("hotels:v1:c:top5") == []

    @pytest.mark.asyncio
    async def test_stats_hit_rate(self, cache):
        await cache.set("k", {"message": "x"})
        await cache.get("k")
        await cache.get("other")
        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5
        assert stats["backend"] == "InMemoryCacheBackend"


class TestInMemoryEviction:
    """LRU eviction down to 80% of capacity."""

    @pytest.mark.asyncio
    async def test_evicts_least_recently_used(self):
        backend = InMemoryCacheBackend(max_entries=5)
        for i in range(5):
            await backend.set(f"k{i}", "v", 60)
        await backend.get("k0")
        await backend.set("k5", "v", 60)

        assert backend.size() == 4
        assert await backend.get("k0") == "v"
        assert await backend.get("k1") is None


class TestCacheOutage:
    """The cache never raises to callers."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", ["raise", "hang"])
    async def test_get_failure_is_a_miss(self, mode):
        cache = ResponseCache(BrokenCacheBackend(mode), timeout_seconds=0.05)
        assert await cache.get("k") is None
        assert cache.available is False
        assert cache.get_stats()["errors"] == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", ["raise", "hang"])
    async def test_set_failure_is_dropped(self, mode):
        cache = ResponseCache(BrokenCacheBackend(mode), timeout_seconds=0.05)
        assert await cache.set("k", {"message": "x"}) is False
        assert cache.available is False

    @pytest.mark.asyncio
    async def test_ping_and_purge_report_failure(self):
        cache = ResponseCache(BrokenCacheBackend("raise"), timeout_seconds=0.05)
        assert await cache.ping() is False
        assert await cache.purge("search:*") == 0
        assert await cache.invalidate("k") is False

    @pytest.mark.asyncio
    async def test_recovers_availability_after_success(self):
        backend = InMemoryCacheBackend()
        cache = ResponseCache(backend, timeout_seconds=0.05)
        cache.available = False
        await cache.get("k")
        assert cache.available is True
