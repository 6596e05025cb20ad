"""Maps user activity events to badge checks.

Each activity stream resolves the user(s) whose stats the action changed,
updates their stored counters where needed, then runs a full badge check for
each of them.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime

import structlog

from prompthub.badges.service import BadgeNotification, BadgeService
from prompthub.db.models import Comment, Prompt, User, UserCounters
from prompthub.errors import NotFoundError
from prompthub.time_utils import utcnow, whole_days_between

logger = structlog.get_logger()

ACTIVITY_STREAMS = (
    "activity:prompt_created",
    "activity:prompt_liked",
    "activity:prompt_saved",
    "activity:prompt_rated",
    "activity:user_followed",
    "activity:comment_created",
    "activity:comment_liked",
    "activity:user_login",
)


def next_streak(current: int, last_active: datetime | None, now: datetime) -> int:
    """Login streak after activity at ``now``.

    Exactly one whole day since the last activity extends the streak, more
    than one restarts it at 1, less leaves it unchanged. First activity is 1.
    """
    if last_active is None:
        return 1
    days = whole_days_between(last_active, now)
    if days == 1:
        return current + 1
    if days > 1:
        return 1
    return current


class TriggerEngine:
    """Evaluates badge checks for activity events."""

    def __init__(self, badge_service: BadgeService) -> None:
        self.badges = badge_service
        self.db = badge_service.db
        self._handlers: dict[str, Callable[[dict], Awaitable[list[int]]]] = {
            "activity:prompt_created": self._on_prompt_created,
            "activity:prompt_liked": self._prompt_owner,
            "activity:prompt_saved": self._prompt_owner,
            "activity:prompt_rated": self._prompt_owner,
            "activity:user_followed": self._on_user_followed,
            "activity:comment_created": self._comment_author,
            "activity:comment_liked": self._comment_author,
            "activity:user_login": self._on_user_login,
        }

    async def evaluate(
        self, stream: str, event_id: str, data: dict,
    ) -> list[BadgeNotification]:
        """Run the triggers for one event.

        Returns the notifications for every affected user (may be empty).
        """
        handler = self._handlers.get(stream)
        if handler is None:
            return []

        try:
            user_ids = await handler(data)
        except NotFoundError as exc:
            logger.info("trigger_target_missing", stream=stream, event_id=event_id, error=str(exc))
            await self.db.rollback()
            return []
        except (KeyError, ValueError):
            logger.warning("trigger_event_malformed", stream=stream, event_id=event_id, data=data)
            return []

        notifications: list[BadgeNotification] = []
        for user_id in user_ids:
            notifications += await self.badges.check_user_badges(user_id)
        return notifications

    async def _require_user(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    async def _prompt_owner(self, data: dict) -> list[int]:
        prompt_id = int(data["prompt_id"])
        prompt = await self.db.get(Prompt, prompt_id)
        if prompt is None:
            raise NotFoundError("prompt", prompt_id)
        return [prompt.created_by]

    async def _comment_author(self, data: dict) -> list[int]:
        comment_id = int(data["comment_id"])
        comment = await self.db.get(Comment, comment_id)
        if comment is None or comment.is_deleted:
            raise NotFoundError("comment", comment_id)
        return [comment.author_id]

    async def _on_prompt_created(self, data: dict) -> list[int]:
        (owner_id,) = await self._prompt_owner(data)
        await self.badges.update_user_stats(owner_id, {"last_active_date": utcnow()})
        return [owner_id]

    async def _on_user_followed(self, data: dict) -> list[int]:
        follower = await self._require_user(int(data["follower_id"]))
        followed = await self._require_user(int(data["followed_id"]))
        return [follower.id, followed.id]

    async def _on_user_login(self, data: dict) -> list[int]:
        user = await self._require_user(int(data["user_id"]))
        now = utcnow()
        counters = await self.db.get(UserCounters, user.id)
        current = counters.consecutive_days if counters else 0
        last_active = counters.last_active_date if counters else None
        await self.badges.update_user_stats(user.id, {
            "consecutive_days": next_streak(current, last_active, now),
            "last_active_date": now,
        })
        return [user.id]
