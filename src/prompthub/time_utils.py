"""UTC helpers shared by the stats aggregator, ledger and leaderboard.

SQLite hands back naive datetimes for TIMESTAMPTZ columns; everything the
engine compares goes through ensure_utc() first.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Whole days elapsed from start to end (never negative)."""
    return max(0, (ensure_utc(end) - ensure_utc(start)).days)
