"""Baseline: content tables read by the badge engine, plus the badge ledger.

users, follows, prompts and comments are owned by the wider application and
are created here with IF NOT EXISTS so the migration also runs against an
existing database. user_badges and user_counters belong to the engine.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            email VARCHAR(320) UNIQUE,
            avatar_url TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_users_name_lower
        ON users(LOWER(name))
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS follows (
            follower_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            followed_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            PRIMARY KEY (follower_id, followed_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_follows_followed
        ON follows(followed_id)
    """)

    # --- Content ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS prompts (
            id BIGSERIAL PRIMARY KEY,
            created_by BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            title VARCHAR(200) NOT NULL,
            category VARCHAR(64) NOT NULL,
            ai_agents JSONB NOT NULL DEFAULT '[]',
            likes INTEGER NOT NULL DEFAULT 0,
            saves INTEGER NOT NULL DEFAULT 0,
            rating DOUBLE PRECISION,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_prompts_created_by
        ON prompts(created_by)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS comments (
            id BIGSERIAL PRIMARY KEY,
            prompt_id BIGINT NOT NULL REFERENCES prompts(id) ON DELETE CASCADE,
            author_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            parent_id BIGINT REFERENCES comments(id) ON DELETE CASCADE,
            content TEXT NOT NULL,
            likes INTEGER NOT NULL DEFAULT 0,
            is_deleted BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_comments_author_id
        ON comments(author_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_comments_parent
        ON comments(parent_id) WHERE parent_id IS NOT NULL
    """)

    # --- Badge ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            badge_id VARCHAR(64) NOT NULL,
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            level INTEGER NOT NULL DEFAULT 1,
            progress DOUBLE PRECISION NOT NULL DEFAULT 0,
            CONSTRAINT user_badges_user_id_badge_id_key UNIQUE (user_id, badge_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_user_badges_user_id
        ON user_badges(user_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_badges_earned
        ON user_badges(earned_at)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS user_counters (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            consecutive_days INTEGER NOT NULL DEFAULT 0,
            last_active_date TIMESTAMPTZ,
            updated_at TIMESTAMPTZ
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_counters")
    op.execute("DROP TABLE IF EXISTS user_badges")
