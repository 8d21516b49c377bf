"""
Tests for the ResourceCache

These tests verify:
- Single-flight: concurrent requests for one key share one fetch
- Generation bumps drop stale entries and force a new fetch
- Failed fetches are cached until the next bump
- LRU bound, explicit invalidation and teardown

Run with: python -m pytest tests/test_resource_cache.py -v
"""

import asyncio

import pytest

from registry.client.generation import Generation
from registry.client.resource_cache import EntryState, ResourceCache
from registry.errors import NotFound, TransportFailure


class FakeFetcher:
    """Counts calls per key; holds every fetch until ``release`` is set."""

    def __init__(self, fail_with: Exception = None):
        self.calls = {}
        self.release = asyncio.Event()
        self.release.set()
        self.fail_with = fail_with

    @property
    def total(self) -> int:
        return sum(self.calls.values())

    async def __call__(self, key):
        self.calls[key] = self.calls.get(key, 0) + 1
        version = self.calls[key]
        await self.release.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return f"{key}@{version}"


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def generation() -> Generation:
    return Generation()


@pytest.fixture
def cache(fetcher: FakeFetcher, generation: Generation) -> ResourceCache:
    cache = ResourceCache(fetcher)
    cache.invalidate_on(generation)
    return cache


@pytest.mark.asyncio
class TestSingleFlight:
    """Test at-most-one fetch per key."""

    async def test_concurrent_requests_share_one_fetch(self, cache, fetcher):
        fetcher.release.clear()
        first = cache.get_or_create(1)
        second = cache.get_or_create(1)

        results = asyncio.gather(first.result(), second.result())
        await asyncio.sleep(0)
        assert first.state == EntryState.PENDING
        fetcher.release.set()

        assert await results == ["1@1", "1@1"]
        assert fetcher.calls == {1: 1}
        assert first.shares_fetch_with(second)

    async def test_resolved_value_is_reused(self, cache, fetcher):
        assert await cache.get_or_create(1) == "1@1"
        assert await cache.get_or_create(1) == "1@1"

        assert fetcher.total == 1
        assert cache.get_stats()["hits"] == 1

    async def test_distinct_keys_fetch_separately(self, cache, fetcher):
        values = await asyncio.gather(cache.get_or_create(1), cache.get_or_create("Bo"))

        assert values == ["1@1", "Bo@1"]
        assert fetcher.calls == {1: 1, "Bo": 1}

    async def test_fetch_is_lazy(self, cache, fetcher):
        handle = cache.get_or_create(1)
        await asyncio.sleep(0)

        assert handle.state == EntryState.EMPTY
        assert fetcher.total == 0

        await handle
        assert handle.state == EntryState.RESOLVED

    async def test_cancelled_waiter_does_not_cancel_fetch(self, cache, fetcher):
        fetcher.release.clear()
        waiter = asyncio.ensure_future(cache.get_or_create(1).result())
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        fetcher.release.set()
        assert await cache.get_or_create(1) == "1@1"
        assert fetcher.total == 1


@pytest.mark.asyncio
class TestGenerationInvalidation:
    """Test invalidation driven by the generation signal."""

    async def test_bump_forces_refetch(self, cache, fetcher, generation):
        assert await cache.get_or_create(1) == "1@1"

        generation.bump()

        assert 1 not in cache
        assert await cache.get_or_create(1) == "1@2"
        assert fetcher.calls == {1: 2}

    async def test_new_entries_carry_current_generation(self, cache, generation):
        generation.bump()
        generation.bump()
        handle = cache.get_or_create(1)

        assert handle.generation == 2
        assert cache.generation == 2

    async def test_old_handle_keeps_its_result(self, cache, generation):
        old = cache.get_or_create(1)
        assert await old == "1@1"

        generation.bump()
        new = cache.get_or_create(1)

        assert await old == "1@1"
        assert await new == "1@2"
        assert not old.shares_fetch_with(new)

    async def test_pending_entry_dropped_on_bump(self, cache, fetcher, generation):
        fetcher.release.clear()
        old = cache.get_or_create(1)
        old_result = asyncio.ensure_future(old.result())
        await asyncio.sleep(0)

        generation.bump()
        new = cache.get_or_create(1)
        new_result = asyncio.ensure_future(new.result())
        await asyncio.sleep(0)

        # The superseded fetch is still running next to the new one
        assert fetcher.calls == {1: 2}
        assert cache.get_stats()["fetches"] == 2
        fetcher.release.set()

        assert await old_result == "1@1"
        assert await new_result == "1@2"
        assert not old.shares_fetch_with(new)

    async def test_entries_survive_without_bump(self, cache, fetcher):
        for _ in range(5):
            await cache.get_or_create(7)
        assert fetcher.total == 1

    async def test_advance_ignores_older_generation(self, cache, generation):
        await cache.get_or_create(1)
        generation.bump()
        await cache.get_or_create(1)

        assert cache.advance(0) == 0
        assert 1 in cache

    async def test_without_signal_nothing_is_invalidated(self, fetcher):
        cache = ResourceCache(fetcher)
        await cache.get_or_create(1)
        await cache.get_or_create(1)

        assert fetcher.total == 1
        assert cache.generation == 0


@pytest.mark.asyncio
class TestFailedEntries:
    """Test caching of failures."""

    async def test_failure_is_cached_until_bump(self, generation):
        fetcher = FakeFetcher(fail_with=TransportFailure("down"))
        cache = ResourceCache(fetcher)
        cache.invalidate_on(generation)

        handle = cache.get_or_create(1)
        with pytest.raises(TransportFailure):
            await handle
        assert handle.state == EntryState.FAILED

        with pytest.raises(TransportFailure):
            await cache.get_or_create(1)
        assert fetcher.total == 1

        fetcher.fail_with = None
        generation.bump()
        assert await cache.get_or_create(1) == "1@2"

    async def test_failure_cleared_by_invalidate(self):
        fetcher = FakeFetcher(fail_with=NotFound("record 1 not found"))
        cache = ResourceCache(fetcher)

        with pytest.raises(NotFound):
            await cache.get_or_create(1)

        fetcher.fail_with = None
        assert cache.invalidate(1) is True
        assert await cache.get_or_create(1) == "1@2"
        assert cache.get_stats()["failures"] == 1


@pytest.mark.asyncio
class TestBoundsAndTeardown:
    """Test LRU bound, invalidate, clear and close."""

    async def test_lru_bound(self, fetcher):
        cache = ResourceCache(fetcher, max_entries=2)

        await cache.get_or_create(1)
        await cache.get_or_create(2)
        await cache.get_or_create(1)   # 1 becomes most recently used
        await cache.get_or_create(3)   # evicts 2

        assert 1 in cache and 3 in cache
        assert 2 not in cache
        assert len(cache) == 2
        assert cache.get_stats()["evictions"] == 1

        await cache.get_or_create(2)
        assert fetcher.calls[2] == 2

    async def test_invalidate_missing_key(self, cache):
        assert cache.invalidate("nope") is False

    async def test_clear(self, cache, fetcher):
        await cache.get_or_create(1)
        cache.clear()

        assert len(cache) == 0
        assert await cache.get_or_create(1) == "1@2"

    async def test_close_cancels_pending(self, cache, fetcher, generation):
        fetcher.release.clear()
        handle = cache.get_or_create(1)
        waiter = asyncio.ensure_future(handle.result())
        await asyncio.sleep(0)

        cache.close()

        with pytest.raises(asyncio.CancelledError):
            await waiter
        assert len(cache) == 0
        assert cache.closed

    async def test_closed_cache_rejects_requests(self, cache, generation):
        cache.close()

        with pytest.raises(RuntimeError):
            cache.get_or_create(1)

        # Bumping after close no longer reaches the cache
        generation.bump()
        assert cache.generation == 0

    async def test_stats(self, cache, generation):
        await cache.get_or_create(1)
        await cache.get_or_create(1)
        generation.bump()

        stats = cache.get_stats()
        assert stats["misses"] == 1
        assert stats["hits"] == 1
        assert stats["fetches"] == 1
        assert stats["invalidations"] == 1
        assert stats["generation"] == 1
        assert stats["entries"] == 0
