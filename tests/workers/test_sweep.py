"""Tests for the daily badge sweep task."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from prompthub.badges.ledger import get_held_levels
from prompthub.time_utils import utcnow
from prompthub.workers.sweep import WorkerSettings, daily_badge_sweep
from tests.conftest import make_user


@pytest.mark.asyncio
async def test_daily_sweep_awards_time_based_badges(db_session: AsyncSession) -> None:
    """An account that crossed 180 days picks up the first veteran level."""
    old = await make_user(db_session, "Old", created_at=utcnow() - timedelta(days=181))
    await make_user(db_session, "New", created_at=utcnow() - timedelta(days=3))
    old_id = old.id
    await db_session.commit()

    result = await daily_badge_sweep({})

    assert result == {"users_checked": 2, "users_awarded": 1, "users_failed": 0}
    assert await get_held_levels(db_session, old_id) == {"veteran": 1}


@pytest.mark.asyncio
async def test_daily_sweep_with_no_users(db_engine: None) -> None:
    assert await daily_badge_sweep({}) == {"users_checked": 0, "users_awarded": 0, "users_failed": 0}


def test_cron_schedule() -> None:
    [job] = WorkerSettings.cron_jobs
    assert job.coroutine is daily_badge_sweep
    assert job.hour == {0}
    assert job.minute == {15}
