"""Calendar arithmetic for the compliance rules.

All functions work on the wall clock of the datetime they are given and keep
its tzinfo. Converting to the organization's local time is done by the caller
(see `to_local`).
"""

from datetime import datetime, time, timedelta, tzinfo
from typing import Optional


END_OF_DAY = time(23, 59, 59, 999999)


def to_local(value: datetime, tz: Optional[tzinfo]) -> datetime:
    """Express an aware datetime in `tz`. Naive datetimes are already local."""
    if tz is None or value.tzinfo is None:
        return value
    return value.astimezone(tz)


def day_number(value: datetime) -> int:
    """Day of week numbered Sunday=0 .. Saturday=6."""
    return (value.weekday() + 1) % 7


def week_start_offset(day: int) -> int:
    """Days to add to reach the Monday of the same week (Sunday=0 numbering)."""
    return -6 if day == 0 else 1 - day


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), END_OF_DAY, tzinfo=value.tzinfo)


def start_of_week(value: datetime) -> datetime:
    """Monday 00:00 of the week containing `value`."""
    monday = value + timedelta(days=week_start_offset(day_number(value)))
    return start_of_day(monday)


def end_of_week(value: datetime) -> datetime:
    """Sunday 23:59:59.999999 of the week containing `value`."""
    return end_of_day(start_of_week(value) + timedelta(days=6))


def week_bounds(value: datetime) -> tuple[datetime, datetime]:
    return start_of_week(value), end_of_week(value)


def day_bounds(value: datetime) -> tuple[datetime, datetime]:
    return start_of_day(value), end_of_day(value)


def hours_between(start: datetime, end: datetime) -> float:
    """Hours from start to end, 0 if end is not after start."""
    return max(0.0, (end - start).total_seconds() / 3600)
