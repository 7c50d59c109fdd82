"""Tests for read-through caching and invalidation."""

import asyncio
import json

import pytest

from fakes import BrokenCache, FlakyDeleteCache
from propertyhub.cache import (
    ALL_LISTINGS,
    MemoryCache,
    NullCache,
    create_cache,
    flush,
    invalidate,
    invalidate_listing_write,
    invalidate_property_write,
    listing_key,
    read_through,
    seller_listings_key,
)
from propertyhub.cache import clients


class Counter:
    """Compute callback that counts its calls."""

    def __init__(self, value):
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.value


class TestReadThrough:
    """Test the look-aside read path."""

    def test_miss_then_hit(self):
        cache = MemoryCache("test")
        compute = Counter({"id": 1, "tags": ("a", "b")})

        first = asyncio.run(read_through(cache, "listing:1", 60, compute))
        second = asyncio.run(read_through(cache, "listing:1", 60, compute))

        assert compute.calls == 1
        assert first == second == {"id": 1, "tags": ["a", "b"]}
        assert json.loads(asyncio.run(cache.get("listing:1"))) == first

    def test_empty_result_is_cached(self):
        cache = MemoryCache("test")
        compute = Counter([])

        asyncio.run(read_through(cache, ALL_LISTINGS, 60, compute))
        asyncio.run(read_through(cache, ALL_LISTINGS, 60, compute))

        assert compute.calls == 1

    def test_compute_error_propagates_and_stores_nothing(self):
        cache = MemoryCache("test")

        async def failing():
            raise LookupError("gone")

        with pytest.raises(LookupError):
            asyncio.run(read_through(cache, "listing:1", 60, failing))
        assert cache.keys() == []

    def test_outage_falls_back_to_compute(self):
        compute = Counter({"id": 1})

        result = asyncio.run(read_through(BrokenCache("test"), "listing:1", 60, compute))

        assert result == {"id": 1}
        assert compute.calls == 1

    def test_corrupt_entry_recomputed(self):
        cache = MemoryCache("test")
        asyncio.run(cache.set("listing:1", "{not json", 60))
        compute = Counter({"id": 1})

        result = asyncio.run(read_through(cache, "listing:1", 60, compute))

        assert result == {"id": 1}
        assert json.loads(asyncio.run(cache.get("listing:1"))) == {"id": 1}

    def test_disabled_cache_always_computes(self):
        compute = Counter(3)

        asyncio.run(read_through(NullCache("test"), "k", 60, compute))
        asyncio.run(read_through(NullCache("test"), "k", 60, compute))

        assert compute.calls == 2


class TestInvalidate:
    """Test write invalidation."""

    def test_failure_does_not_stop_other_deletes(self):
        cache = FlakyDeleteCache(failing={ALL_LISTINGS})
        for key in (ALL_LISTINGS, seller_listings_key("s1"), listing_key("l1")):
            asyncio.run(cache.set(key, "[]", 60))

        failures = asyncio.run(
            invalidate(cache, ALL_LISTINGS, seller_listings_key("s1"), listing_key("l1"))
        )

        assert failures == 1
        assert sorted(cache.delete_attempts) == sorted(
            [ALL_LISTINGS, seller_listings_key("s1"), listing_key("l1")]
        )
        assert cache.keys() == [ALL_LISTINGS]

    def test_listing_write_keys(self):
        cache = FlakyDeleteCache(failing=set())

        asyncio.run(invalidate_listing_write(cache, "s1"))
        created = list(cache.delete_attempts)
        cache.delete_attempts.clear()
        asyncio.run(invalidate_listing_write(cache, "s1", "l1"))

        assert created == [ALL_LISTINGS, "sellerListings:s1"]
        assert cache.delete_attempts == [ALL_LISTINGS, "sellerListings:s1", "listing:l1"]

    def test_property_write_flushes_namespace_only(self):
        cache = MemoryCache("test")
        neighbour = MemoryCache("other")
        asyncio.run(cache.set("nearby:12.9:77.6:5000", "{}", 60))
        asyncio.run(cache.set("property:p1", "{}", 60))
        asyncio.run(cache.set(ALL_LISTINGS, "[]", 60))
        neighbour._entries = cache._entries
        asyncio.run(neighbour.set("property:p1", "{}", 60))

        asyncio.run(invalidate_property_write(cache, ["p1"]))

        assert cache.keys() == []
        assert neighbour.keys() == ["property:p1"]

    def test_outage_is_absorbed(self):
        broken = BrokenCache("test")

        asyncio.run(invalidate_listing_write(broken, "s1", "l1"))
        asyncio.run(invalidate_property_write(broken, ["p1"]))

        assert asyncio.run(flush(broken)) is False


class TestMemoryCache:
    """Test the in-process cache client."""

    def test_entries_expire(self, monkeypatch):
        now = [1000.0]
        monkeypatch.setattr(clients.time, "monotonic", lambda: now[0])
        cache = MemoryCache("test")
        asyncio.run(cache.set("k", "v", 10))

        now[0] += 9
        assert asyncio.run(cache.get("k")) == "v"
        now[0] += 1
        assert asyncio.run(cache.get("k")) is None

    def test_delete_missing_key(self):
        cache = MemoryCache("test")

        asyncio.run(cache.delete("absent"))

        assert cache.keys() == []


class TestCreateCache:
    """Test client selection from settings."""

    def test_disabled(self, settings):
        settings.cache_enabled = False
        assert isinstance(create_cache(settings), NullCache)

    def test_memory_without_redis(self, settings):
        cache = create_cache(settings)

        assert isinstance(cache, MemoryCache)
        assert cache.namespace == "test"

    def test_redis_url(self, settings):
        settings.redis_url = "redis://localhost:6379/0"

        cache = create_cache(settings)

        assert isinstance(cache, clients.RedisCache)
        assert cache.namespace == "test"


class TestConcurrentInvalidation:
    """A read overlapping a write must not cache the pre-write result."""

    def test_populate_skipped_after_invalidation(self):
        cache = MemoryCache("test")

        async def scenario():
            started, release = asyncio.Event(), asyncio.Event()

            async def slow_compute():
                started.set()
                await release.wait()
                return {"price": 100.0}

            reader = asyncio.create_task(read_through(cache, "property:p1", 60, slow_compute))
            await started.wait()
            await invalidate_property_write(cache, ["p1"])
            release.set()
            overlapping = await reader
            fresh = await read_through(cache, "property:p1", 60, Counter({"price": 999.0}))
            return overlapping, fresh

        overlapping, fresh = asyncio.run(scenario())

        assert overlapping == {"price": 100.0}
        assert fresh == {"price": 999.0}

    def test_listing_invalidation_also_blocks_populate(self):
        cache = MemoryCache("test")

        async def scenario():
            generation = await cache.generation()
            await invalidate_listing_write(cache, "s1")
            return await cache.set_if_generation(ALL_LISTINGS, "[]", 60, generation)

        assert asyncio.run(scenario()) is False
        assert cache.keys() == []

    def test_flush_keeps_generation(self):
        cache = MemoryCache("test")

        async def scenario():
            await flush(cache)
            after_flush = await cache.generation()
            await cache.clear()
            return after_flush, await cache.generation()

        after_flush, after_clear = asyncio.run(scenario())

        assert after_flush == 1
        assert after_clear == 1
