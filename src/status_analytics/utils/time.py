"""Time helpers."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat a naive ``value`` as UTC; aware values are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_iso(value: datetime) -> str:
    return ensure_utc(value).isoformat()


def millis_between(start: datetime, end: datetime) -> float:
    """Return ``end - start`` in milliseconds."""
    return (end - start).total_seconds() * 1000.0
