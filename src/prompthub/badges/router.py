"""Badge API endpoints — catalog, held badges, progress and on-demand checks."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from prompthub.badges.definitions import ALL_BADGES, highest_tier
from prompthub.badges.schemas import (
    AllBadgesResponse,
    BadgeCheckResponse,
    BadgeDefinitionResponse,
    BadgeNotificationResponse,
    BadgeProgressResponse,
    EarnedBadgeResponse,
    UserBadgeProgressResponse,
    UserBadgesResponse,
)
from prompthub.badges.service import BadgeService
from prompthub.dependencies import get_badge_service

router = APIRouter(prefix="/api/v1/badges", tags=["Badges"])


@router.get("", response_model=AllBadgesResponse)
async def list_badges() -> AllBadgesResponse:
    """The full badge catalog."""
    return AllBadgesResponse(
        badges=[BadgeDefinitionResponse.from_definition(b) for b in ALL_BADGES],
        total=len(ALL_BADGES),
    )


@router.get("/users/{user_id}", response_model=UserBadgesResponse)
async def get_user_badges(
    user_id: int,
    service: BadgeService = Depends(get_badge_service),  # noqa: B008
) -> UserBadgesResponse:
    views = await service.get_user_badges(user_id)
    top = highest_tier(v.held for v in views)
    return UserBadgesResponse(
        user_id=user_id,
        earned=[
            EarnedBadgeResponse(
                badge_id=v.definition.id,
                name=v.definition.name,
                icon=v.definition.icon,
                tier=v.tier.value,
                category=v.definition.category.value,
                level=v.held.level if v.definition.is_progressive else None,
                level_name=v.level_name,
                earned_at=v.held.earned_at,
                progress=v.held.progress,
            )
            for v in views
        ],
        highest_tier=top.value if top else None,
        total_available=len(ALL_BADGES),
        total_earned=len(views),
    )


@router.get("/users/{user_id}/progress", response_model=UserBadgeProgressResponse)
async def get_badge_progress(
    user_id: int,
    service: BadgeService = Depends(get_badge_service),  # noqa: B008
) -> UserBadgeProgressResponse:
    progress = await service.get_badge_progress(user_id)
    return UserBadgeProgressResponse(
        user_id=user_id,
        badges=[
            BadgeProgressResponse(
                badge=BadgeDefinitionResponse.from_definition(p.definition),
                earned=p.earned,
                earned_at=p.earned_at,
                level=p.level,
                progress=round(p.progress, 1),
                next_level_threshold=p.next_level_threshold,
            )
            for p in progress
        ],
    )


@router.post("/users/{user_id}/check", response_model=BadgeCheckResponse)
async def check_user_badges(
    user_id: int,
    service: BadgeService = Depends(get_badge_service),  # noqa: B008
) -> BadgeCheckResponse:
    """Evaluate the user's badges now and return anything newly earned."""
    notifications = await service.check_user_badges(user_id)
    return BadgeCheckResponse(
        user_id=user_id,
        notifications=[
            BadgeNotificationResponse(
                badge_id=n.badge.id,
                name=n.badge.name,
                level=n.level,
                level_name=n.level_name,
                tier=n.badge.tier_for(n.level).value,
                earned_at=n.earned_at,
                is_new=n.is_new,
            )
            for n in notifications
        ],
    )
