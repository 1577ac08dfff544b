"""Tests for the single-flight profile lookup cache."""

from __future__ import annotations

import asyncio

import pytest

from wechat_feed.core.profile_cache import CoalescingLookupCache, ProfileCache
from wechat_feed.core.types import PROFILES
from wechat_feed.store import MemoryStore


class _SlowLookup:
    """Backing lookup that yields to the loop before answering."""

    def __init__(self, values):
        self.values = values
        self.keys: list[str] = []

    async def __call__(self, key):
        self.keys.append(key)
        await asyncio.sleep(0.01)
        return self.values.get(key)


def test_concurrent_resolves_share_one_backing_query():
    lookup = _SlowLookup({"Bz1": {"title": "Account"}})
    cache = CoalescingLookupCache(lookup)

    async def _run():
        return await asyncio.gather(*(cache.resolve("Bz1") for _ in range(20)))

    results = asyncio.run(_run())

    assert lookup.keys == ["Bz1"]
    assert cache.calls == 1
    assert all(result is results[0] for result in results)
    assert results[0] == {"title": "Account"}


def test_absent_result_is_cached_and_never_requeried():
    lookup = _SlowLookup({})
    cache = CoalescingLookupCache(lookup)

    async def _run():
        first = await asyncio.gather(*(cache.resolve("missing") for _ in range(5)))
        second = await cache.resolve("missing")
        return first, second

    first, second = asyncio.run(_run())

    assert first == [None] * 5
    assert second is None
    assert "missing" in cache
    assert lookup.keys == ["missing"]


def test_distinct_keys_each_query_once():
    lookup = _SlowLookup({"a": 1, "b": 2})
    cache = CoalescingLookupCache(lookup)

    async def _run():
        return await asyncio.gather(
            cache.resolve("a"), cache.resolve("b"), cache.resolve("a"), cache.resolve("b")
        )

    assert asyncio.run(_run()) == [1, 2, 1, 2]
    assert sorted(lookup.keys) == ["a", "b"]


def test_lookup_error_reaches_all_callers_and_is_not_cached():
    calls = 0

    async def failing(key):
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        raise RuntimeError("store down")

    cache = CoalescingLookupCache(failing)

    async def _run():
        return await asyncio.gather(*(cache.resolve("Bz1") for _ in range(3)), return_exceptions=True)

    results = asyncio.run(_run())

    assert calls == 1
    assert all(isinstance(result, RuntimeError) for result in results)
    assert "Bz1" not in cache

    with pytest.raises(RuntimeError):
        asyncio.run(cache.resolve("Bz1"))
    assert calls == 2


def test_profile_cache_reads_profiles_collection():
    store = MemoryStore()

    async def _run():
        await store.find_one_and_update(PROFILES, {"biz": "Bz1"}, {"title": "Account", "username": "gh_1"})
        cache = ProfileCache(store)
        profile = await cache.resolve("Bz1")
        missing = await cache.resolve("Bz2")
        return profile, missing

    profile, missing = asyncio.run(_run())

    assert profile.biz == "Bz1"
    assert profile.title == "Account"
    assert profile.username == "gh_1"
    assert missing is None


def test_cancelled_leader_releases_waiters_and_key():
    calls = []

    async def _run():
        release = asyncio.Event()

        async def lookup(key):
            calls.append(key)
            await release.wait()
            return "value"

        cache = CoalescingLookupCache(lookup)
        leader = asyncio.create_task(cache.resolve("k"))
        await asyncio.sleep(0)
        follower = asyncio.create_task(cache.resolve("k"))
        await asyncio.sleep(0)

        leader.cancel()
        results = await asyncio.gather(leader, follower, return_exceptions=True)

        release.set()
        fresh = await asyncio.wait_for(cache.resolve("k"), timeout=1.0)
        return results, fresh

    results, fresh = asyncio.run(_run())

    assert all(isinstance(result, asyncio.CancelledError) for result in results)
    assert fresh == "value"
    assert calls == ["k", "k"]
