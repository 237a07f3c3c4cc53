from __future__ import annotations

from datetime import UTC, datetime


def now_utc() -> datetime:
    return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """Normalise to aware UTC; naive values are read as local time."""
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt.astimezone(UTC)


def from_timestamp(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=UTC)
