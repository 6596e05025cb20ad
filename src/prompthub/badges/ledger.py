"""Badge ledger writer. The only code that writes ``user_badges``.

Both writes are single conditional statements so concurrent triggers racing
on the same (user, badge) pair resolve inside the database: the loser's
insert or upgrade simply affects zero rows.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from prompthub.db.models import UserBadge
from prompthub.time_utils import ensure_utc, utcnow


@dataclass(frozen=True)
class HeldBadge:
    """One ledger entry, detached from the session."""

    badge_id: str
    level: int
    earned_at: datetime
    progress: float = 0.0

    @classmethod
    def from_row(cls, row: UserBadge) -> HeldBadge:
        return cls(
            badge_id=row.badge_id,
            level=row.level or 1,
            earned_at=ensure_utc(row.earned_at),
            progress=row.progress or 0.0,
        )


def _insert_for(db: AsyncSession):  # noqa: ANN202
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


async def award_badge(
    db: AsyncSession,
    user_id: int,
    badge_id: str,
    level: int = 1,
    progress: float = 0.0,
    now: datetime | None = None,
) -> bool:
    """Insert a ledger entry if the pair is absent.

    Returns True if a row was inserted, False if the badge was already held.
    """
    insert = _insert_for(db)
    stmt = (
        insert(UserBadge)
        .values(
            user_id=user_id,
            badge_id=badge_id,
            level=level,
            progress=progress,
            earned_at=now or utcnow(),
        )
        .on_conflict_do_nothing(index_elements=["user_id", "badge_id"])
    )
    result = await db.execute(stmt)
    return result.rowcount == 1


async def upgrade_badge(
    db: AsyncSession,
    user_id: int,
    badge_id: str,
    new_level: int,
    progress: float = 0.0,
    now: datetime | None = None,
) -> bool:
    """Raise a held badge to ``new_level``; lower or equal levels are ignored.

    ``earned_at`` moves to the upgrade time. Returns True if a row changed.
    """
    stmt = (
        update(UserBadge)
        .where(
            UserBadge.user_id == user_id,
            UserBadge.badge_id == badge_id,
            UserBadge.level < new_level,
        )
        .values(level=new_level, earned_at=now or utcnow(), progress=progress)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount == 1


async def get_held_badges(db: AsyncSession, user_id: int) -> list[HeldBadge]:
    result = await db.execute(
        select(UserBadge)
        .where(UserBadge.user_id == user_id)
        .order_by(UserBadge.earned_at)
        .execution_options(populate_existing=True)
    )
    return [HeldBadge.from_row(row) for row in result.scalars()]


async def get_held_levels(db: AsyncSession, user_id: int) -> dict[str, int]:
    """Map of badge id to held level for one user."""
    result = await db.execute(
        select(UserBadge.badge_id, UserBadge.level).where(UserBadge.user_id == user_id)
    )
    return {row.badge_id: row.level or 1 for row in result}


async def get_all_user_badges(
    db: AsyncSession, user_ids: list[int] | None = None,
) -> dict[int, list[HeldBadge]]:
    """Ledger entries grouped by user, optionally limited to ``user_ids``."""
    stmt = select(UserBadge).execution_options(populate_existing=True)
    if user_ids is not None:
        if not user_ids:
            return {}
        stmt = stmt.where(UserBadge.user_id.in_(user_ids))
    result = await db.execute(stmt.order_by(UserBadge.user_id, UserBadge.earned_at))

    grouped: dict[int, list[HeldBadge]] = defaultdict(list)
    for row in result.scalars():
        grouped[row.user_id].append(HeldBadge.from_row(row))
    return dict(grouped)
