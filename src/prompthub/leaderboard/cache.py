"""Process-wide leaderboard result cache and its cross-process invalidation."""

from __future__ import annotations

import asyncio
import dataclasses
import json
import threading
import time
from collections.abc import Callable
from typing import Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = structlog.get_logger()

INVALIDATION_CHANNEL = "pubsub:leaderboard_invalidate"


def make_cache_key(filters: Any) -> str:
    """Canonical JSON of the full filter set (a dataclass instance)."""
    return json.dumps(dataclasses.asdict(filters), sort_keys=True, default=str)


class LeaderboardCache:
    """TTL cache bounded by entry count, evicting the oldest insert first.

    Expired entries are dropped lazily when read. All access goes through one
    lock, so it is safe to share between request handlers and worker threads.

    Every ``clear`` bumps ``generation``. A caller that computed a value from
    data read before a clear passes the generation it started under to
    ``set``, and the stale value is discarded.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(self, key: str) -> Any | None:
        with self._lock:
            cached = self._entries.get(key)
            if cached is None:
                return None
            stored_at, value = cached
            if self._clock() - stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, generation: int | None = None) -> bool:
        """Store ``value``; returns False if a clear happened since ``generation``."""
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._entries[key] = (self._clock(), value)
            if len(self._entries) > self.max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
            return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._generation += 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


async def publish_invalidation(redis: Redis | None, reason: str) -> None:
    """Tell other processes to drop their cached leaderboards."""
    if redis is None:
        return
    try:
        await redis.publish(INVALIDATION_CHANNEL, json.dumps({"reason": reason}))
    except Exception:
        logger.warning("leaderboard_invalidation_publish_failed", exc_info=True)


class CacheInvalidationListener:
    """Clears the local cache whenever another process publishes an award."""

    def __init__(self, redis: Redis, cache: LeaderboardCache) -> None:
        self.redis = redis
        self.cache = cache
        self._running = False

    async def start(self) -> None:
        self._running = True
        pubsub = self.redis.pubsub()
        try:
            await pubsub.subscribe(INVALIDATION_CHANNEL)
        except RedisError:
            logger.warning("leaderboard_invalidation_listener_unavailable", exc_info=True)
            return
        logger.info("leaderboard_invalidation_listener_started")

        try:
            while self._running:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message and message["type"] == "message":
                    self.cache.clear()
                    logger.debug("leaderboard_cache_cleared", source="pubsub")
                await asyncio.sleep(0.01)
        except asyncio.CancelledError:
            pass
        except RedisError:
            logger.warning("leaderboard_invalidation_listener_lost", exc_info=True)
        finally:
            await pubsub.aclose()

    async def stop(self) -> None:
        self._running = False
