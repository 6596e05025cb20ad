"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from prompthub.badges.service import BadgeService
from prompthub.config import get_settings
from prompthub.database import get_session as _get_session
from prompthub.leaderboard.cache import LeaderboardCache
from prompthub.leaderboard.service import LeaderboardService
from prompthub.redis_client import get_redis as _get_redis

get_db = _get_session


async def get_redis_dep() -> AsyncGenerator[Redis | None, None]:
    """Yield the Redis client (or None) as a FastAPI dependency."""
    yield _get_redis()


def get_leaderboard_cache(request: Request) -> LeaderboardCache:
    """The per-process cache created in the app lifespan."""
    return request.app.state.leaderboard_cache


def get_badge_service(
    db: AsyncSession = Depends(get_db),  # noqa: B008
    cache: LeaderboardCache = Depends(get_leaderboard_cache),  # noqa: B008
    redis: Redis | None = Depends(get_redis_dep),  # noqa: B008
) -> BadgeService:
    settings = get_settings()
    return BadgeService(db, cache, redis, viral_like_threshold=settings.viral_like_threshold)


def get_leaderboard_service(
    db: AsyncSession = Depends(get_db),  # noqa: B008
    cache: LeaderboardCache = Depends(get_leaderboard_cache),  # noqa: B008
) -> LeaderboardService:
    settings = get_settings()
    return LeaderboardService(
        db,
        cache,
        top_n=settings.leaderboard_top_badges,
        nearby_window=settings.leaderboard_nearby_window,
    )
