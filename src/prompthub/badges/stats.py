"""Builds a point-in-time UserStats snapshot for one user.

Stored counters (login streak) are combined with on-demand aggregation over
the user's prompts, follow edges and comments. The snapshot is a plain value
object: it is rebuilt for every evaluation and never written back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from prompthub.db.models import Comment, Follow, Prompt, User, UserCounters
from prompthub.errors import NotFoundError
from prompthub.time_utils import ensure_utc, utcnow, whole_days_between

logger = structlog.get_logger()

# Saturday, Sunday (datetime.weekday())
WEEKEND_DAYS = frozenset({5, 6})


@dataclass(frozen=True)
class UserStats:
    """Derived activity snapshot used for badge evaluation."""

    account_created_at: datetime
    total_prompts: int = 0
    total_likes: int = 0
    total_saves: int = 0
    total_followers: int = 0
    total_following: int = 0
    consecutive_days: int = 0
    last_active_date: datetime | None = None
    categories_used: frozenset[str] = frozenset()
    agents_used: frozenset[str] = frozenset()
    highest_rated_prompt: float = 0.0
    average_rating: float = 0.0
    prompts_with_rating: int = 0
    viral_prompts: int = 0
    weekend_prompts: int = 0
    total_comments: int = 0
    total_comment_likes: int = 0
    total_replies: int = 0
    comments_with_replies: int = 0
    unique_users_helped: int = 0

    def account_age_days(self, now: datetime | None = None) -> int:
        """Whole days since the account was created."""
        return whole_days_between(self.account_created_at, now or utcnow())


# Fields a THRESHOLD criteria may compare against.
NUMERIC_STATS_FIELDS: frozenset[str] = frozenset({
    "total_prompts",
    "total_likes",
    "total_saves",
    "total_followers",
    "total_following",
    "consecutive_days",
    "highest_rated_prompt",
    "average_rating",
    "prompts_with_rating",
    "viral_prompts",
    "weekend_prompts",
    "total_comments",
    "total_comment_likes",
    "total_replies",
    "comments_with_replies",
    "unique_users_helped",
})


async def _count(db: AsyncSession, stmt) -> int:  # noqa: ANN001
    result = await db.execute(stmt)
    return int(result.scalar_one() or 0)


async def _comment_stats(db: AsyncSession, user_id: int) -> dict[str, int]:
    """Comment, reply and comment-like aggregates for one author."""
    own = (Comment.author_id == user_id, Comment.is_deleted.is_(False))

    total_comments = await _count(db, select(func.count(Comment.id)).where(*own))
    total_comment_likes = await _count(db, select(func.coalesce(func.sum(Comment.likes), 0)).where(*own))
    total_replies = await _count(
        db, select(func.count(Comment.id)).where(*own, Comment.parent_id.is_not(None))
    )

    # Top-level comments by this user that received at least one reply
    reply = aliased(Comment)
    comments_with_replies = await _count(
        db,
        select(func.count(distinct(Comment.id)))
        .select_from(Comment)
        .join(reply, reply.parent_id == Comment.id)
        .where(*own, Comment.parent_id.is_(None)),
    )

    # Distinct authors of the comments this user replied to
    parent = aliased(Comment)
    unique_users_helped = await _count(
        db,
        select(func.count(distinct(parent.author_id)))
        .select_from(Comment)
        .join(parent, Comment.parent_id == parent.id)
        .where(*own),
    )

    return {
        "total_comments": total_comments,
        "total_comment_likes": total_comment_likes,
        "total_replies": total_replies,
        "comments_with_replies": comments_with_replies,
        "unique_users_helped": unique_users_helped,
    }


async def calculate_user_stats(
    db: AsyncSession,
    user_id: int,
    viral_like_threshold: int = 100,
) -> UserStats:
    """Compute the full UserStats snapshot for a user.

    Raises:
        NotFoundError: If the user does not exist.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("user", user_id)

    counters = await db.get(UserCounters, user_id)

    total_followers = await _count(
        db, select(func.count()).select_from(Follow).where(Follow.followed_id == user_id)
    )
    total_following = await _count(
        db, select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
    )

    result = await db.execute(
        select(Prompt).where(Prompt.created_by == user_id).execution_options(populate_existing=True)
    )
    prompts = list(result.scalars())

    ratings = [p.rating for p in prompts if p.rating is not None]
    categories_used = frozenset(p.category for p in prompts if p.category)
    agents_used = frozenset(agent for p in prompts for agent in (p.ai_agents or []))

    comment_stats = await _comment_stats(db, user_id)

    stats = UserStats(
        account_created_at=ensure_utc(user.created_at),
        total_prompts=len(prompts),
        total_likes=sum(p.likes or 0 for p in prompts),
        total_saves=sum(p.saves or 0 for p in prompts),
        total_followers=total_followers,
        total_following=total_following,
        consecutive_days=counters.consecutive_days if counters else 0,
        last_active_date=(
            ensure_utc(counters.last_active_date)
            if counters and counters.last_active_date
            else None
        ),
        categories_used=categories_used,
        agents_used=agents_used,
        highest_rated_prompt=max(ratings, default=0.0),
        average_rating=sum(ratings) / len(ratings) if ratings else 0.0,
        prompts_with_rating=len(ratings),
        viral_prompts=sum(1 for p in prompts if (p.likes or 0) >= viral_like_threshold),
        weekend_prompts=sum(
            1 for p in prompts if ensure_utc(p.created_at).weekday() in WEEKEND_DAYS
        ),
        **comment_stats,
    )
    logger.debug("user_stats_calculated", user_id=user_id, total_prompts=stats.total_prompts)
    return stats
