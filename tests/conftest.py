"""Shared test fixtures.

Tests run against an in-memory SQLite database (one shared connection via
StaticPool) with the ORM schema created fresh for every test. Redis is not
initialized, so services run without cross-process invalidation.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

os.environ.setdefault("PHUB_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PHUB_LOG_FORMAT", "console")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from prompthub.config import get_settings  # noqa: E402
from prompthub.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from prompthub.db.base import Base  # noqa: E402
from prompthub.db.models import Comment, Follow, Prompt, User, UserBadge  # noqa: E402
from prompthub.leaderboard.cache import LeaderboardCache  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[None, None]:
    """Fresh schema per test."""
    get_settings.cache_clear()
    await init_db(TEST_DATABASE_URL)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await close_db()


@pytest_asyncio.fixture
async def db_session(db_engine: None) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test setup and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def leaderboard_cache() -> LeaderboardCache:
    return LeaderboardCache(ttl_seconds=300, max_entries=100)


@pytest_asyncio.fixture
async def client(
    db_engine: None, leaderboard_cache: LeaderboardCache,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the app, sharing the test database."""
    from prompthub.main import create_app

    app = create_app()
    app.state.leaderboard_cache = leaderboard_cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# --- Factories ---


async def make_user(
    db: AsyncSession,
    name: str = "Ada",
    created_at: datetime | None = None,
    avatar_url: str | None = None,
) -> User:
    user = User(name=name, created_at=created_at or NOW - timedelta(days=30), avatar_url=avatar_url)
    db.add(user)
    await db.flush()
    return user


async def make_prompt(
    db: AsyncSession,
    user: User,
    category: str = "Writing",
    ai_agents: list[str] | None = None,
    likes: int = 0,
    saves: int = 0,
    rating: float | None = None,
    created_at: datetime | None = None,
) -> Prompt:
    prompt = Prompt(
        created_by=user.id,
        title=f"Prompt by {user.name}",
        category=category,
        ai_agents=ai_agents if ai_agents is not None else ["ChatGPT"],
        likes=likes,
        saves=saves,
        rating=rating,
        created_at=created_at or NOW - timedelta(days=1),
    )
    db.add(prompt)
    await db.flush()
    return prompt


async def make_prompts(db: AsyncSession, user: User, count: int, **kwargs) -> list[Prompt]:
    return [await make_prompt(db, user, **kwargs) for _ in range(count)]


async def make_comment(
    db: AsyncSession,
    author: User,
    prompt: Prompt,
    parent: Comment | None = None,
    likes: int = 0,
    is_deleted: bool = False,
) -> Comment:
    comment = Comment(
        prompt_id=prompt.id,
        author_id=author.id,
        parent_id=parent.id if parent else None,
        content="Nice prompt",
        likes=likes,
        is_deleted=is_deleted,
        created_at=NOW - timedelta(hours=1),
    )
    db.add(comment)
    await db.flush()
    return comment


async def make_follow(db: AsyncSession, follower: User, followed: User) -> Follow:
    follow = Follow(follower_id=follower.id, followed_id=followed.id, created_at=NOW)
    db.add(follow)
    await db.flush()
    return follow


async def give_badge(
    db: AsyncSession,
    user: User,
    badge_id: str,
    level: int = 1,
    earned_at: datetime | None = None,
) -> UserBadge:
    row = UserBadge(user_id=user.id, badge_id=badge_id, level=level, earned_at=earned_at or NOW, progress=0.0)
    db.add(row)
    await db.flush()
    return row
