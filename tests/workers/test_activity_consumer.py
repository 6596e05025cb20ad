"""Tests for the activity event consumer."""

from __future__ import annotations

import json
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from prompthub.badges.ledger import get_held_levels
from prompthub.database import get_session_factory
from prompthub.time_utils import utcnow
from prompthub.workers.activity_consumer import (
    CONSUMER_GROUP,
    handle_message,
    parse_event,
    process_event,
)
from tests.conftest import make_prompt, make_user


class TestParseEvent:
    """Stream payload decoding."""

    def test_json_data_field(self) -> None:
        raw = {"event": "prompt_liked", "data": json.dumps({"prompt_id": 5})}
        assert parse_event(raw) == {"prompt_id": 5}

    def test_flat_fields(self) -> None:
        assert parse_event({"prompt_id": "5"}) == {"prompt_id": "5"}

    def test_invalid_json_falls_back_to_fields(self) -> None:
        raw = {"data": "{not json", "prompt_id": "5"}
        assert parse_event(raw) == raw


class TestProcessEvent:
    """One event end to end: stream message -> trigger -> ledger."""

    @pytest.mark.asyncio
    async def test_awards_badges_for_event(self, db_session: AsyncSession) -> None:
        user = await make_user(db_session, created_at=utcnow() - timedelta(days=5))
        prompt = await make_prompt(db_session, user)
        user_id, prompt_id = user.id, prompt.id
        await db_session.commit()

        awarded = await process_event(
            get_session_factory(), None, "activity:prompt_created", "1-0",
            {"data": json.dumps({"prompt_id": prompt_id})},
        )

        assert awarded == ["first_prompt"]
        assert await get_held_levels(db_session, user_id) == {"first_prompt": 1}

    @pytest.mark.asyncio
    async def test_replayed_event_awards_nothing(self, db_session: AsyncSession) -> None:
        user = await make_user(db_session, created_at=utcnow() - timedelta(days=5))
        prompt = await make_prompt(db_session, user)
        prompt_id = prompt.id
        await db_session.commit()

        raw = {"prompt_id": str(prompt_id)}
        await process_event(get_session_factory(), None, "activity:prompt_liked", "1-0", raw)
        assert await process_event(get_session_factory(), None, "activity:prompt_liked", "1-0", raw) == []

    @pytest.mark.asyncio
    async def test_event_for_missing_prompt(self, db_engine: None) -> None:
        awarded = await process_event(
            get_session_factory(), None, "activity:prompt_liked", "1-0", {"prompt_id": "31337"},
        )
        assert awarded == []


class TestHandleMessage:
    """Every message is acked, processed or not."""

    @pytest.mark.asyncio
    async def test_processed_event_is_acked(self, db_engine: None) -> None:
        redis = AsyncMock()
        await handle_message(
            get_session_factory(), redis, "activity:prompt_liked", "1-0", {"prompt_id": "31337"},
        )
        redis.xack.assert_awaited_once_with("activity:prompt_liked", CONSUMER_GROUP, "1-0")

    @pytest.mark.asyncio
    async def test_failed_event_is_still_acked(self) -> None:
        broken_factory = MagicMock(side_effect=RuntimeError("database down"))
        redis = AsyncMock()

        await handle_message(broken_factory, redis, "activity:user_login", "7-0", {"user_id": "1"})

        broken_factory.assert_called_once()
        redis.xack.assert_awaited_once_with("activity:user_login", CONSUMER_GROUP, "7-0")
