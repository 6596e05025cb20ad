"""Pydantic response models for leaderboard endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from prompthub.leaderboard.service import LeaderboardEntry


class TopBadgeResponse(BaseModel):
    badge_id: str
    name: str
    icon: str
    tier: str
    level: int | None = None
    earned_at: datetime
    score: int


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: int
    user_name: str
    avatar_url: str | None = None
    total_score: int
    badge_count: int
    badge_breakdown: dict[str, int]
    top_badges: list[TopBadgeResponse]
    joined_at: datetime

    @classmethod
    def from_entry(cls, entry: LeaderboardEntry) -> LeaderboardEntryResponse:
        return cls(
            rank=entry.rank,
            user_id=entry.user_id,
            user_name=entry.user_name,
            avatar_url=entry.avatar_url,
            total_score=entry.total_score,
            badge_count=entry.badge_count,
            badge_breakdown=entry.badge_breakdown,
            top_badges=[
                TopBadgeResponse(
                    badge_id=s.definition.id,
                    name=s.definition.level_name(s.badge.level),
                    icon=s.definition.icon,
                    tier=s.definition.tier_for(s.badge.level).value,
                    level=s.badge.level if s.definition.is_progressive else None,
                    earned_at=s.badge.earned_at,
                    score=s.score,
                )
                for s in entry.top_badges
            ],
            joined_at=entry.joined_at,
        )


class LeaderboardMetadataResponse(BaseModel):
    total_users: int
    total_pages: int
    current_page: int
    period: str
    type: str
    last_updated: datetime
    category: str | None = None
    tier: str | None = None


class LeaderboardResponse(BaseModel):
    leaderboard: list[LeaderboardEntryResponse]
    metadata: LeaderboardMetadataResponse


class UserRankResponse(BaseModel):
    user_id: int
    rank: int
    score: int
    percentile: float
    badge_count: int
    total_users: int
    nearby: list[LeaderboardEntryResponse] = []


class LeaderboardStatsResponse(BaseModel):
    total_users: int
    total_badges_awarded: int
    average_badges_per_user: float
    top_score: int
    average_score: float
    most_common_badge: str
    rarest_badge: str
