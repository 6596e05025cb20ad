"""ORM models for the tables the badge engine reads and writes.

Users, follows, prompts and comments are owned by the wider application;
the engine only reads them. ``user_badges`` (the badge ledger) and
``user_counters`` are the only tables it writes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from prompthub.db.base import Base

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigIntId = BigInteger().with_variant(Integer(), "sqlite")
JsonList = JSON().with_variant(JSONB(), "postgresql")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, unique=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    badges: Mapped[list[UserBadge]] = relationship("UserBadge", back_populates="user")
    counters: Mapped[UserCounters | None] = relationship(
        "UserCounters", back_populates="user", uselist=False
    )


class Follow(Base):
    """Directed follow edge: follower_id follows followed_id."""

    __tablename__ = "follows"

    follower_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    followed_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class UserCounters(Base):
    """Stored activity counters that cannot be re-derived from content (login streak)."""

    __tablename__ = "user_counters"

    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    consecutive_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_active_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped[User] = relationship("User", back_populates="counters")


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


class Prompt(Base):
    """Maps to the 'prompts' table."""

    __tablename__ = "prompts"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    created_by: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    ai_agents: Mapped[list[str]] = mapped_column(JsonList, nullable=False, default=list)
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    saves: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Comment(Base):
    """Maps to the 'comments' table. Replies point at their parent via parent_id."""

    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    prompt_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Badge ledger
# ---------------------------------------------------------------------------


class UserBadge(Base):
    """Badges earned by users — UNIQUE(user_id, badge_id) prevents duplicates.

    ``badge_id`` is the catalog key; definitions live in memory, not in the database.
    """

    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="user_badges_user_id_badge_id_key"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    badge_id: Mapped[str] = mapped_column(String(64), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")

    user: Mapped[User] = relationship("User", back_populates="badges")
