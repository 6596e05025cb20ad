"""arq worker running the daily badge sweep.

Import path for arq CLI: arq prompthub.workers.sweep.WorkerSettings
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from prompthub.badges.service import BadgeService, SweepSummary
from prompthub.config import get_settings
from prompthub.database import close_db, get_session_factory, init_db
from prompthub.middleware.logging import setup_worker_logging

logger = logging.getLogger(__name__)


async def sweep_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    settings = get_settings()
    setup_worker_logging(settings)
    await init_db(settings.database_url)
    logger.info("Badge sweep worker started")


async def sweep_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await close_db()
    logger.info("Badge sweep worker shut down")


async def daily_badge_sweep(ctx: dict) -> dict[str, int]:  # type: ignore[type-arg]
    """Scheduled task: re-check every user's badges (time-based ones mature daily)."""
    settings = get_settings()
    async with get_session_factory()() as db:
        # ctx["redis"] is the arq pool; awards published on it clear API caches.
        service = BadgeService(
            db,
            redis=ctx.get("redis"),
            viral_like_threshold=settings.viral_like_threshold,
        )
        summary: SweepSummary = await service.run_time_based_sweep(settings.sweep_batch_size)

    for user_id, error in summary.failed.items():
        logger.warning("Sweep failed for user %d: %s", user_id, error)
    logger.info(
        "Daily badge sweep: %d users checked, %d awarded, %d failed",
        summary.users_checked, len(summary.awarded), len(summary.failed),
    )
    return {
        "users_checked": summary.users_checked,
        "users_awarded": len(summary.awarded),
        "users_failed": len(summary.failed),
    }


class WorkerSettings:
    """arq worker settings for the daily sweep."""

    functions = [daily_badge_sweep]
    cron_jobs = [cron(daily_badge_sweep, hour={0}, minute={15})]  # 00:15 UTC
    on_startup = sweep_startup
    on_shutdown = sweep_shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    max_jobs = 1
    job_timeout = 3600
