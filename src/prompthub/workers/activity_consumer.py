"""Standalone runner for the activity event consumer.

Reads activity events from Redis Streams and runs the badge triggers for
each one. One database session per event; every event is acked once
handled, including events whose processing failed.

Usage: python -m prompthub.workers.activity_consumer
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from prompthub.badges.service import BadgeService
from prompthub.badges.trigger_engine import ACTIVITY_STREAMS, TriggerEngine
from prompthub.config import get_settings
from prompthub.database import close_db, get_session_factory, init_db
from prompthub.middleware.logging import setup_worker_logging

logger = logging.getLogger(__name__)

CONSUMER_GROUP = "badge-consumers"

_running = True


def parse_event(raw_data: dict) -> dict:
    """Event payload: JSON in a ``data`` field, or the flat stream fields."""
    data_str = raw_data.get("data")
    if isinstance(data_str, str):
        try:
            parsed = json.loads(data_str)
        except json.JSONDecodeError:
            return dict(raw_data)
        if isinstance(parsed, dict):
            return parsed
    return dict(raw_data)


async def process_event(
    session_factory: async_sessionmaker[AsyncSession],
    redis_client: aioredis.Redis | None,
    stream: str,
    msg_id: str,
    raw_data: dict,
    viral_like_threshold: int = 100,
) -> list[str]:
    """Run the triggers for one stream message; returns awarded badge ids."""
    data = parse_event(raw_data)
    async with session_factory() as db:
        service = BadgeService(db, redis=redis_client, viral_like_threshold=viral_like_threshold)
        notifications = await TriggerEngine(service).evaluate(stream, msg_id, data)

    awarded = [n.badge.id for n in notifications]
    if awarded:
        logger.info("Awarded badges: %s (stream=%s, event=%s)", awarded, stream, msg_id)
    return awarded


async def handle_message(
    session_factory: async_sessionmaker[AsyncSession],
    redis_client: aioredis.Redis,
    stream: str,
    msg_id: str,
    raw_data: dict,
    viral_like_threshold: int = 100,
) -> None:
    """Process one message and ack it, whether or not processing succeeded.

    Failed events are not retried; the daily sweep re-checks every user.
    """
    try:
        await process_event(
            session_factory, redis_client, stream, msg_id, raw_data, viral_like_threshold,
        )
    except Exception:
        logger.exception("Failed to process %s from %s, dropping it", msg_id, stream)
    try:
        await redis_client.xack(stream, CONSUMER_GROUP, msg_id)
    except aioredis.RedisError:
        logger.warning("Failed to ack %s on %s", msg_id, stream, exc_info=True)


async def ensure_groups(redis_client: aioredis.Redis) -> None:
    """Create the consumer group on every activity stream (idempotent)."""
    for stream in ACTIVITY_STREAMS:
        try:
            await redis_client.xgroup_create(stream, CONSUMER_GROUP, id="0", mkstream=True)
            logger.info("Created consumer group %s for %s", CONSUMER_GROUP, stream)
        except aioredis.ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise


async def consume(redis_client: aioredis.Redis, consumer_name: str) -> None:
    """Main consumer loop."""
    settings = get_settings()
    session_factory = get_session_factory()
    streams = {s: ">" for s in ACTIVITY_STREAMS}

    while _running:
        try:
            events = await redis_client.xreadgroup(
                groupname=CONSUMER_GROUP,
                consumername=consumer_name,
                streams=streams,
                count=100,
                block=5000,
            )
        except aioredis.ResponseError as e:
            logger.error("XREADGROUP error: %s", e)
            await asyncio.sleep(1)
            continue

        if not events:
            continue

        for stream_name, messages in events:
            stream_str = stream_name if isinstance(stream_name, str) else stream_name.decode()

            for msg_id, raw_data in messages:
                await handle_message(
                    session_factory, redis_client, stream_str, msg_id, raw_data,
                    settings.viral_like_threshold,
                )


async def main() -> None:
    """Run the activity event consumer."""
    settings = get_settings()
    await init_db(settings.database_url)

    redis_client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    await ensure_groups(redis_client)

    loop = asyncio.get_running_loop()

    def _stop() -> None:
        global _running  # noqa: PLW0603
        _running = False

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _stop)

    logger.info("Starting activity consumer (consumer=%s)", settings.activity_consumer_name)

    try:
        await consume(redis_client, settings.activity_consumer_name)
    finally:
        await redis_client.aclose()
        await close_db()
        logger.info("Activity consumer stopped")


if __name__ == "__main__":
    setup_worker_logging(get_settings())
    asyncio.run(main())
