"""Time utility helpers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


def now_utc() -> datetime:
    """Return current timezone-aware UTC datetime."""
    return datetime.now(tz=UTC)


def minutes_ago(minutes: int, base: datetime | None = None) -> datetime:
    """Return the instant ``minutes`` before ``base`` (or now)."""
    return (base or now_utc()) - timedelta(minutes=minutes)
