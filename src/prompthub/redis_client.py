"""Redis connection pool.

Redis only carries leaderboard cache invalidation between processes, so it
is optional: an empty ``redis_url`` leaves the client unset and the API runs
with a process-local cache alone.
"""

import redis.asyncio as redis
import structlog

logger = structlog.get_logger()

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Initialize the Redis connection pool (no-op for an empty URL)."""
    global _pool  # noqa: PLW0603
    if not url:
        logger.info("redis_disabled")
        return
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis | None:
    """The Redis client, or None when Redis is disabled or not yet initialized."""
    return _pool
