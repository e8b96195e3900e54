"""Time-related utility functions."""

from datetime import datetime, timezone, tzinfo


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Mongo hands back naive datetimes; they were stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def as_aware(value: datetime, tz: tzinfo) -> datetime:
    """Attach tz to a naive wall-clock datetime, leave aware values untouched."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value
