"""Leaderboard API endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query

from prompthub.badges.definitions import BadgeCategory, BadgeTier
from prompthub.config import get_settings
from prompthub.dependencies import get_leaderboard_service
from prompthub.leaderboard.schemas import (
    LeaderboardEntryResponse,
    LeaderboardMetadataResponse,
    LeaderboardResponse,
    LeaderboardStatsResponse,
    UserRankResponse,
)
from prompthub.leaderboard.service import (
    LeaderboardFilters,
    LeaderboardPeriod,
    LeaderboardService,
    LeaderboardType,
)

router = APIRouter(prefix="/api/v1/leaderboard", tags=["Leaderboard"])

_settings = get_settings()


@router.get("", response_model=LeaderboardResponse)
async def get_leaderboard(
    type: LeaderboardType = Query(LeaderboardType.OVERALL),  # noqa: A002, B008
    period: LeaderboardPeriod = Query(LeaderboardPeriod.ALL_TIME),  # noqa: B008
    category: BadgeCategory | None = Query(None),  # noqa: B008
    tier: BadgeTier | None = Query(None),  # noqa: B008
    limit: int = Query(_settings.leaderboard_default_limit, ge=1, le=_settings.leaderboard_max_limit),
    offset: int = Query(0, ge=0),
    search: str | None = Query(None, max_length=100),
    service: LeaderboardService = Depends(get_leaderboard_service),  # noqa: B008
) -> LeaderboardResponse:
    filters = LeaderboardFilters(
        type=type,
        period=period,
        category=category,
        tier=tier,
        limit=limit,
        offset=offset,
        search_query=search or None,
    )
    page = await service.get_leaderboard(filters)
    meta = page.metadata
    return LeaderboardResponse(
        leaderboard=[LeaderboardEntryResponse.from_entry(e) for e in page.entries],
        metadata=LeaderboardMetadataResponse(
            total_users=meta.total_users,
            total_pages=meta.total_pages,
            current_page=meta.current_page,
            period=meta.period.value,
            type=meta.type.value,
            last_updated=meta.last_updated,
            category=meta.category.value if meta.category else None,
            tier=meta.tier.value if meta.tier else None,
        ),
    )


@router.get("/stats", response_model=LeaderboardStatsResponse)
async def get_leaderboard_stats(
    service: LeaderboardService = Depends(get_leaderboard_service),  # noqa: B008
) -> LeaderboardStatsResponse:
    stats = await service.get_leaderboard_stats()
    return LeaderboardStatsResponse(**asdict(stats))


@router.get("/users/{user_id}", response_model=UserRankResponse)
async def get_user_rank(
    user_id: int,
    type: LeaderboardType = Query(LeaderboardType.OVERALL),  # noqa: A002, B008
    period: LeaderboardPeriod = Query(LeaderboardPeriod.ALL_TIME),  # noqa: B008
    category: BadgeCategory | None = Query(None),  # noqa: B008
    tier: BadgeTier | None = Query(None),  # noqa: B008
    service: LeaderboardService = Depends(get_leaderboard_service),  # noqa: B008
) -> UserRankResponse:
    info = await service.get_user_rank(user_id, type, period, category, tier)
    return UserRankResponse(
        user_id=info.user_id,
        rank=info.rank,
        score=info.score,
        percentile=info.percentile,
        badge_count=info.badge_count,
        total_users=info.total_users,
        nearby=[LeaderboardEntryResponse.from_entry(e) for e in info.nearby],
    )
