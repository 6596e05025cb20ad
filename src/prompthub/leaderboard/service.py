"""Leaderboard ranker — scores users from the badge ledger and ranks them.

Ranking itself (``rank_users`` / ``build_entries``) is pure; the service
class loads users and their badges and fronts the result cache.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from prompthub.badges.definitions import (
    BADGE_DEFINITIONS,
    BadgeCategory,
    BadgeTier,
)
from prompthub.badges.ledger import HeldBadge, get_all_user_badges
from prompthub.db.models import User
from prompthub.errors import InvalidFilterCombinationError, NotFoundError
from prompthub.leaderboard.cache import LeaderboardCache, make_cache_key
from prompthub.leaderboard.scoring import (
    DEFAULT_SCORING_CONFIG,
    ScoredBadge,
    ScoringConfig,
    badge_breakdown,
    calculate_score,
    effective_tier,
    round_half_up,
    top_badges,
)
from prompthub.time_utils import ensure_utc, utcnow

logger = structlog.get_logger()


class LeaderboardType(str, Enum):
    OVERALL = "overall"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CATEGORY = "category"
    TIER = "tier"


class LeaderboardPeriod(str, Enum):
    ALL_TIME = "all_time"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


PERIOD_DAYS: dict[LeaderboardPeriod, int] = {
    LeaderboardPeriod.WEEKLY: 7,
    LeaderboardPeriod.MONTHLY: 30,
    LeaderboardPeriod.YEARLY: 365,
}

# WEEKLY/MONTHLY/YEARLY leaderboard types imply their period.
_TYPE_PERIOD: dict[LeaderboardType, LeaderboardPeriod] = {
    LeaderboardType.WEEKLY: LeaderboardPeriod.WEEKLY,
    LeaderboardType.MONTHLY: LeaderboardPeriod.MONTHLY,
    LeaderboardType.YEARLY: LeaderboardPeriod.YEARLY,
}


@dataclass(frozen=True)
class LeaderboardFilters:
    type: LeaderboardType = LeaderboardType.OVERALL
    period: LeaderboardPeriod = LeaderboardPeriod.ALL_TIME
    category: BadgeCategory | None = None
    tier: BadgeTier | None = None
    limit: int = 50
    offset: int = 0
    search_query: str | None = None

    def validate(self) -> None:
        """Reject CATEGORY/TIER views that lack their filter value."""
        if self.type == LeaderboardType.CATEGORY and self.category is None:
            raise InvalidFilterCombinationError("category is required for a category leaderboard")
        if self.type == LeaderboardType.TIER and self.tier is None:
            raise InvalidFilterCombinationError("tier is required for a tier leaderboard")

    @property
    def effective_period(self) -> LeaderboardPeriod:
        if self.period == LeaderboardPeriod.ALL_TIME:
            return _TYPE_PERIOD.get(self.type, self.period)
        return self.period


def period_cutoff(period: LeaderboardPeriod, now: datetime) -> datetime | None:
    """Earliest ``earned_at`` that counts for ``period``; None for all-time."""
    days = PERIOD_DAYS.get(period)
    if days is None:
        return None
    return now - timedelta(days=days)


@dataclass(frozen=True)
class RankableUser:
    user_id: int
    name: str
    joined_at: datetime
    badges: tuple[HeldBadge, ...] = ()
    avatar_url: str | None = None


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    user_id: int
    user_name: str
    avatar_url: str | None
    total_score: int
    badge_count: int
    badge_breakdown: dict[str, int]
    top_badges: list[ScoredBadge]
    joined_at: datetime


@dataclass(frozen=True)
class LeaderboardMetadata:
    total_users: int
    total_pages: int
    current_page: int
    period: LeaderboardPeriod
    type: LeaderboardType
    last_updated: datetime
    category: BadgeCategory | None = None
    tier: BadgeTier | None = None


@dataclass(frozen=True)
class LeaderboardPage:
    entries: list[LeaderboardEntry]
    total: int
    metadata: LeaderboardMetadata


@dataclass(frozen=True)
class UserRankInfo:
    user_id: int
    rank: int
    score: int
    percentile: float
    badge_count: int
    total_users: int
    nearby: list[LeaderboardEntry] = field(default_factory=list)


@dataclass(frozen=True)
class LeaderboardStats:
    total_users: int
    total_badges_awarded: int
    average_badges_per_user: float
    top_score: int
    average_score: float
    most_common_badge: str
    rarest_badge: str


def matching_badges(
    badges: Iterable[HeldBadge], filters: LeaderboardFilters, now: datetime,
) -> list[HeldBadge]:
    """Badges that count for this view: inside the period, matching category/tier."""
    cutoff = period_cutoff(filters.effective_period, now)
    matched = []
    for badge in badges:
        if cutoff is not None and ensure_utc(badge.earned_at) < cutoff:
            continue
        definition = BADGE_DEFINITIONS.get(badge.badge_id)
        if filters.type == LeaderboardType.CATEGORY:
            if definition is None or definition.category != filters.category:
                continue
        elif filters.type == LeaderboardType.TIER:
            if definition is None or effective_tier(definition, badge.level) != filters.tier:
                continue
        matched.append(badge)
    return matched


def _matches_search(user: RankableUser, query: str | None) -> bool:
    if not query:
        return True
    return query.casefold() in (user.name or "").casefold()


def rank_users(
    users: Iterable[RankableUser],
    filters: LeaderboardFilters,
    now: datetime | None = None,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
    top_n: int = 3,
) -> list[LeaderboardEntry]:
    """Full ranked list for a view, ranks 1..n.

    Users with no badge counting toward the view are left out. Order is
    score desc, then badge count desc, then earlier join date.
    """
    now = now or utcnow()
    scored = []
    for user in users:
        if not _matches_search(user, filters.search_query):
            continue
        badges = matching_badges(user.badges, filters, now)
        if not badges:
            continue
        scored.append(LeaderboardEntry(
            rank=0,
            user_id=user.user_id,
            user_name=user.name,
            avatar_url=user.avatar_url,
            total_score=calculate_score(badges, config),
            badge_count=len(badges),
            badge_breakdown=badge_breakdown(badges),
            top_badges=top_badges(badges, top_n, config),
            joined_at=ensure_utc(user.joined_at),
        ))

    scored.sort(key=lambda e: (-e.total_score, -e.badge_count, e.joined_at))
    return [replace(entry, rank=i + 1) for i, entry in enumerate(scored)]


def build_entries(
    users: Iterable[RankableUser],
    filters: LeaderboardFilters,
    now: datetime | None = None,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
    top_n: int = 3,
) -> tuple[list[LeaderboardEntry], int]:
    """Requested page of the ranked list plus the total matching count."""
    ranked = rank_users(users, filters, now, config, top_n)
    return ranked[filters.offset:filters.offset + filters.limit], len(ranked)


class LeaderboardService:
    """Loads ranking input from the ledger; serves pages through the cache."""

    def __init__(
        self,
        db: AsyncSession,
        cache: LeaderboardCache | None = None,
        config: ScoringConfig = DEFAULT_SCORING_CONFIG,
        top_n: int = 3,
        nearby_window: int = 5,
    ) -> None:
        self.db = db
        self.cache = cache
        self.config = config
        self.top_n = top_n
        self.nearby_window = nearby_window

    async def load_rankable_users(self) -> list[RankableUser]:
        """Every user holding at least one badge, with their ledger entries."""
        held = await get_all_user_badges(self.db)
        if not held:
            return []
        result = await self.db.execute(select(User).where(User.id.in_(list(held))))
        return [
            RankableUser(
                user_id=u.id,
                name=u.name,
                joined_at=ensure_utc(u.created_at),
                badges=tuple(held[u.id]),
                avatar_url=u.avatar_url,
            )
            for u in result.scalars()
        ]

    async def get_leaderboard(self, filters: LeaderboardFilters) -> LeaderboardPage:
        filters.validate()

        key = make_cache_key(filters)
        generation = None
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached
            generation = self.cache.generation

        now = utcnow()
        users = await self.load_rankable_users()
        entries, total = build_entries(users, filters, now, self.config, self.top_n)
        page = LeaderboardPage(
            entries=entries,
            total=total,
            metadata=LeaderboardMetadata(
                total_users=total,
                total_pages=math.ceil(total / filters.limit) if filters.limit else 0,
                current_page=filters.offset // filters.limit + 1 if filters.limit else 1,
                period=filters.effective_period,
                type=filters.type,
                last_updated=now,
                category=filters.category,
                tier=filters.tier,
            ),
        )

        # Not stored if an award cleared the cache while this page was being built.
        if self.cache is not None and not self.cache.set(key, page, generation=generation):
            logger.debug("leaderboard_cache_write_skipped", type=filters.type.value)
        logger.debug("leaderboard_computed", type=filters.type.value, total=total)
        return page

    async def get_user_rank(
        self,
        user_id: int,
        type: LeaderboardType = LeaderboardType.OVERALL,  # noqa: A002
        period: LeaderboardPeriod = LeaderboardPeriod.ALL_TIME,
        category: BadgeCategory | None = None,
        tier: BadgeTier | None = None,
    ) -> UserRankInfo:
        """Position of one user in a view, with the entries around them.

        A user with no badge counting toward the view gets rank 0.
        """
        filters = LeaderboardFilters(type=type, period=period, category=category, tier=tier)
        filters.validate()

        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("user", user_id)

        ranked = rank_users(await self.load_rankable_users(), filters, utcnow(), self.config, self.top_n)
        position = next((i for i, e in enumerate(ranked) if e.user_id == user_id), None)
        if position is None:
            total_users = await self.db.scalar(select(func.count()).select_from(User))
            return UserRankInfo(
                user_id=user_id, rank=0, score=0, percentile=0.0,
                badge_count=0, total_users=total_users or 0,
            )

        entry = ranked[position]
        rank = entry.rank
        total = len(ranked)
        percentile = round_half_up((total - rank + 1) / total * 100 * 10) / 10
        start = max(0, rank - 3)
        return UserRankInfo(
            user_id=user_id,
            rank=rank,
            score=entry.total_score,
            percentile=percentile,
            badge_count=entry.badge_count,
            total_users=total,
            nearby=ranked[start:start + self.nearby_window],
        )

    async def get_leaderboard_stats(self) -> LeaderboardStats:
        held = await get_all_user_badges(self.db)
        total_users = len(held)
        frequency: Counter[str] = Counter()
        scores: list[int] = []
        for badges in held.values():
            frequency.update(b.badge_id for b in badges)
            scores.append(calculate_score(badges, self.config))

        total_badges = sum(frequency.values())
        # Stable sort keeps first-seen order among equal counts.
        by_count: Sequence[tuple[str, int]] = sorted(frequency.items(), key=lambda kv: kv[1])
        return LeaderboardStats(
            total_users=total_users,
            total_badges_awarded=total_badges,
            average_badges_per_user=total_badges / total_users if total_users else 0.0,
            top_score=max(scores, default=0),
            average_score=sum(scores) / len(scores) if scores else 0.0,
            most_common_badge=by_count[-1][0] if by_count else "",
            rarest_badge=by_count[0][0] if by_count else "",
        )

