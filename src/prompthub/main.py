"""FastAPI application factory."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from prompthub.badges.router import router as badges_router
from prompthub.config import get_settings
from prompthub.database import close_db, init_db
from prompthub.health.router import router as health_router
from prompthub.leaderboard.cache import CacheInvalidationListener, LeaderboardCache
from prompthub.leaderboard.router import router as leaderboard_router
from prompthub.middleware import setup_middleware
from prompthub.redis_client import close_redis, get_redis, init_redis


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    app.state.leaderboard_cache = LeaderboardCache(
        ttl_seconds=settings.leaderboard_cache_ttl_seconds,
        max_entries=settings.leaderboard_cache_max_entries,
    )

    # Awards made by workers clear this process's cached leaderboards too
    listener: CacheInvalidationListener | None = None
    listener_task: asyncio.Task[None] | None = None
    redis = get_redis()
    if redis is not None:
        listener = CacheInvalidationListener(redis, app.state.leaderboard_cache)
        listener_task = asyncio.create_task(listener.start())

    yield

    if listener is not None and listener_task is not None:
        await listener.stop()
        listener_task.cancel()
        try:
            await listener_task
        except asyncio.CancelledError:
            pass

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Prompt Hub Achievements API",
        description="Badge evaluation and leaderboard scoring for the AI Prompt Hub",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(badges_router)
    app.include_router(leaderboard_router)

    return app


app = create_app()
