"""Badge service — the entry points the rest of the application calls.

Check flow: fresh stats snapshot -> evaluate every catalog badge -> award
or upgrade through the ledger -> commit -> clear cached leaderboards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import structlog
from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prompthub.badges.definitions import (
    ALL_BADGES,
    BADGE_DEFINITIONS,
    BadgeDefinition,
    BadgeTier,
)
from prompthub.badges.evaluator import evaluate, evaluate_all
from prompthub.badges.ledger import (
    HeldBadge,
    award_badge,
    get_held_badges,
    get_held_levels,
    upgrade_badge,
)
from prompthub.badges.stats import calculate_user_stats
from prompthub.db.models import User, UserCounters
from prompthub.errors import NotFoundError
from prompthub.leaderboard.cache import LeaderboardCache, publish_invalidation
from prompthub.time_utils import utcnow

logger = structlog.get_logger()

# Stored counters that can be patched; everything else in UserStats is derived.
COUNTER_FIELDS = frozenset({"consecutive_days", "last_active_date"})


@dataclass(frozen=True)
class BadgeNotification:
    badge: BadgeDefinition
    level: int | None
    level_name: str
    earned_at: datetime
    is_new: bool


@dataclass(frozen=True)
class UserBadgeView:
    """A held badge joined with its catalog definition."""

    held: HeldBadge
    definition: BadgeDefinition
    level_name: str
    tier: BadgeTier


@dataclass(frozen=True)
class BadgeProgress:
    definition: BadgeDefinition
    earned: bool
    earned_at: datetime | None
    level: int | None
    progress: float
    next_level_threshold: float | None


@dataclass
class SweepSummary:
    users_checked: int = 0
    awarded: dict[int, list[str]] = field(default_factory=dict)
    failed: dict[int, str] = field(default_factory=dict)


class BadgeService:
    def __init__(
        self,
        db: AsyncSession,
        cache: LeaderboardCache | None = None,
        redis: Redis | None = None,
        viral_like_threshold: int = 100,
    ) -> None:
        self.db = db
        self.cache = cache
        self.redis = redis
        self.viral_like_threshold = viral_like_threshold

    async def check_user_badges(
        self, user_id: int, now: datetime | None = None,
    ) -> list[BadgeNotification]:
        """Award or upgrade every badge the user now qualifies for.

        Never raises: a failed check is logged and reported as no new
        badges, so it cannot break the action that triggered it.
        """
        try:
            return await self._check(user_id, now)
        except Exception:
            logger.exception("badge_check_failed", user_id=user_id)
            await self.db.rollback()
            return []

    async def _check(self, user_id: int, now: datetime | None = None) -> list[BadgeNotification]:
        now = now or utcnow()
        stats = await calculate_user_stats(self.db, user_id, self.viral_like_threshold)
        held = await get_held_levels(self.db, user_id)

        notifications: list[BadgeNotification] = []
        for result in evaluate_all(stats, held, now=now):
            if not result.earned:
                continue
            definition = BADGE_DEFINITIONS[result.badge_id]
            level = result.level or 1
            is_new = result.previous_level == 0
            written = False
            if is_new:
                written = await award_badge(
                    self.db, user_id, result.badge_id, level, result.progress, now,
                )
            # Either already held, or a concurrent award inserted a lower level first.
            if not written:
                is_new = False
                written = await upgrade_badge(
                    self.db, user_id, result.badge_id, level, result.progress, now,
                )
            if not written:
                continue

            notifications.append(BadgeNotification(
                badge=definition,
                level=level if definition.is_progressive else None,
                level_name=definition.level_name(level),
                earned_at=now,
                is_new=is_new,
            ))
            logger.info(
                "badge_awarded" if is_new else "badge_upgraded",
                user_id=user_id,
                badge_id=result.badge_id,
                level=level,
            )

        await self.db.commit()
        if notifications:
            await self._invalidate_leaderboards()
        return notifications

    async def _invalidate_leaderboards(self) -> None:
        if self.cache is not None:
            self.cache.clear()
        await publish_invalidation(self.redis, "badge_awarded")

    async def update_user_stats(self, user_id: int, patch: dict[str, Any]) -> None:
        """Merge stored counter values for a user.

        Commits on its own, so a later failed badge check cannot roll the
        counters back.

        Raises:
            ValueError: If the patch names anything but a stored counter.
            NotFoundError: If the user does not exist.
        """
        unknown = set(patch) - COUNTER_FIELDS
        if unknown:
            raise ValueError(f"Not a stored counter: {', '.join(sorted(unknown))}")

        if await self.db.get(User, user_id) is None:
            raise NotFoundError("user", user_id)

        counters = await self.db.get(UserCounters, user_id)
        if counters is None:
            counters = UserCounters(user_id=user_id, consecutive_days=0)
            self.db.add(counters)
        for key, value in patch.items():
            setattr(counters, key, value)
        counters.updated_at = utcnow()
        await self.db.commit()

    async def get_user_badges(self, user_id: int) -> list[UserBadgeView]:
        """Held badges with definitions; entries no longer in the catalog are dropped."""
        if await self.db.get(User, user_id) is None:
            raise NotFoundError("user", user_id)

        views = []
        for held in await get_held_badges(self.db, user_id):
            definition = BADGE_DEFINITIONS.get(held.badge_id)
            if definition is None:
                continue
            views.append(UserBadgeView(
                held=held,
                definition=definition,
                level_name=definition.level_name(held.level),
                tier=definition.tier_for(held.level),
            ))
        return views

    async def get_badge_progress(
        self, user_id: int, now: datetime | None = None,
    ) -> list[BadgeProgress]:
        """Catalog-wide view of what the user holds and how close the rest are."""
        now = now or utcnow()
        stats = await calculate_user_stats(self.db, user_id, self.viral_like_threshold)
        held = {b.badge_id: b for b in await get_held_badges(self.db, user_id)}

        progress = []
        for definition in ALL_BADGES:
            entry = held.get(definition.id)
            current_level = entry.level if entry else 0
            result = evaluate(definition, stats, current_level, now)
            upcoming = definition.next_level(current_level) if definition.is_progressive else None
            progress.append(BadgeProgress(
                definition=definition,
                earned=entry is not None,
                earned_at=entry.earned_at if entry else None,
                level=current_level or None,
                progress=result.progress,
                next_level_threshold=upcoming.threshold if upcoming else None,
            ))
        return progress

    async def run_time_based_sweep(
        self, batch_size: int = 500, now: datetime | None = None,
    ) -> SweepSummary:
        """Re-check every user, one at a time, in id-ordered batches.

        A failure for one user is recorded in the summary and the sweep moves on.
        """
        now = now or utcnow()
        summary = SweepSummary()
        last_id = 0

        while True:
            result = await self.db.execute(
                select(User.id).where(User.id > last_id).order_by(User.id).limit(batch_size)
            )
            user_ids = list(result.scalars())
            if not user_ids:
                break

            for user_id in user_ids:
                summary.users_checked += 1
                try:
                    notifications = await self._check(user_id, now)
                except Exception as exc:
                    await self.db.rollback()
                    summary.failed[user_id] = str(exc)
                    logger.warning("sweep_user_failed", user_id=user_id, error=str(exc))
                    continue
                if notifications:
                    summary.awarded[user_id] = [n.badge.id for n in notifications]

            last_id = user_ids[-1]

        logger.info(
            "badge_sweep_complete",
            users_checked=summary.users_checked,
            users_awarded=len(summary.awarded),
            users_failed=len(summary.failed),
        )
        return summary
