"""Leaderboard result cache tests."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from prompthub.leaderboard.cache import (
    INVALIDATION_CHANNEL,
    LeaderboardCache,
    make_cache_key,
    publish_invalidation,
)
from prompthub.leaderboard.service import LeaderboardFilters, LeaderboardPeriod, LeaderboardType


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestLeaderboardCache:
    def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = LeaderboardCache(ttl_seconds=300, clock=clock)
        cache.set("k", "page")
        clock.now += 300
        assert cache.get("k") == "page"

    def test_expired_entry_is_dropped(self):
        clock = FakeClock()
        cache = LeaderboardCache(ttl_seconds=300, clock=clock)
        cache.set("k", "page")
        clock.now += 300.5
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_miss(self):
        assert LeaderboardCache().get("nope") is None

    def test_evicts_oldest_insert_first(self):
        cache = LeaderboardCache(max_entries=3)
        for key in ("a", "b", "c"):
            cache.set(key, key.upper())
        cache.get("a")  # reads do not refresh position
        cache.set("d", "D")
        assert len(cache) == 3
        assert cache.get("a") is None
        assert cache.get("b") == "B"
        assert cache.get("d") == "D"

    def test_overwrite_keeps_size(self):
        cache = LeaderboardCache(max_entries=2)
        cache.set("a", 1)
        cache.set("a", 2)
        assert len(cache) == 1
        assert cache.get("a") == 2

    def test_clear(self):
        cache = LeaderboardCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert len(cache) == 0
        assert cache.get("a") is None

    def test_set_after_clear_with_old_generation_is_dropped(self):
        cache = LeaderboardCache()
        started = cache.generation
        cache.clear()
        assert cache.set("a", "stale", generation=started) is False
        assert len(cache) == 0
        assert cache.set("a", "fresh", generation=cache.generation) is True
        assert cache.get("a") == "fresh"


class TestCacheKey:
    def test_same_filters_same_key(self):
        a = LeaderboardFilters(type=LeaderboardType.OVERALL, limit=10)
        b = LeaderboardFilters(type=LeaderboardType.OVERALL, limit=10)
        assert make_cache_key(a) == make_cache_key(b)

    def test_every_field_is_part_of_the_key(self):
        base = LeaderboardFilters()
        variants = [
            LeaderboardFilters(offset=50),
            LeaderboardFilters(limit=10),
            LeaderboardFilters(search_query="ann"),
            LeaderboardFilters(period=LeaderboardPeriod.WEEKLY),
        ]
        keys = {make_cache_key(base)} | {make_cache_key(v) for v in variants}
        assert len(keys) == 5

    def test_key_is_canonical_json(self):
        key = make_cache_key(LeaderboardFilters())
        decoded = json.loads(key)
        assert list(decoded) == sorted(decoded)


class TestPublishInvalidation:
    @pytest.mark.asyncio
    async def test_publishes_on_channel(self):
        redis = AsyncMock()
        await publish_invalidation(redis, "badge_awarded")
        redis.publish.assert_awaited_once()
        channel, payload = redis.publish.await_args.args
        assert channel == INVALIDATION_CHANNEL
        assert json.loads(payload) == {"reason": "badge_awarded"}

    @pytest.mark.asyncio
    async def test_no_redis_is_a_noop(self):
        await publish_invalidation(None, "badge_awarded")

    @pytest.mark.asyncio
    async def test_publish_failure_is_swallowed(self):
        redis = AsyncMock()
        redis.publish.side_effect = ConnectionError("down")
        await publish_invalidation(redis, "badge_awarded")
