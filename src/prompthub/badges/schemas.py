"""Pydantic response models for badge endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from prompthub.badges.definitions import BadgeDefinition


# --- Catalog ---


class BadgeLevelResponse(BaseModel):
    level: int
    name: str
    threshold: float
    tier: str


class BadgeDefinitionResponse(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    tier: str
    category: str
    criteria_type: str
    is_progressive: bool = False
    levels: list[BadgeLevelResponse] = []

    @classmethod
    def from_definition(cls, definition: BadgeDefinition) -> BadgeDefinitionResponse:
        return cls(
            id=definition.id,
            name=definition.name,
            description=definition.description,
            icon=definition.icon,
            tier=definition.tier.value,
            category=definition.category.value,
            criteria_type=definition.criteria.kind,
            is_progressive=definition.is_progressive,
            levels=[
                BadgeLevelResponse(level=l.level, name=l.name, threshold=l.threshold, tier=l.tier.value)
                for l in definition.levels  # noqa: E741
            ],
        )


class AllBadgesResponse(BaseModel):
    badges: list[BadgeDefinitionResponse]
    total: int


# --- User badges ---


class EarnedBadgeResponse(BaseModel):
    badge_id: str
    name: str
    icon: str
    tier: str
    category: str
    level: int | None = None
    level_name: str
    earned_at: datetime
    progress: float = 0.0


class UserBadgesResponse(BaseModel):
    user_id: int
    earned: list[EarnedBadgeResponse]
    highest_tier: str | None = None
    total_available: int
    total_earned: int


class BadgeProgressResponse(BaseModel):
    badge: BadgeDefinitionResponse
    earned: bool
    earned_at: datetime | None = None
    level: int | None = None
    progress: float
    next_level_threshold: float | None = None


class UserBadgeProgressResponse(BaseModel):
    user_id: int
    badges: list[BadgeProgressResponse]


# --- Check ---


class BadgeNotificationResponse(BaseModel):
    badge_id: str
    name: str
    level: int | None = None
    level_name: str
    tier: str
    earned_at: datetime
    is_new: bool


class BadgeCheckResponse(BaseModel):
    user_id: int
    notifications: list[BadgeNotificationResponse]
