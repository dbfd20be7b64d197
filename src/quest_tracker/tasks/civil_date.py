# src/quest_tracker/tasks/civil_date.py

"""
Timestamp <-> civil date helpers.

A civil date is a timestamp reduced to year/month/day in a given timezone.
Every "same day" / "day difference" decision goes through civil_date(), never
through raw timestamps, so time-of-day never leaks into streak logic.

With tz=None the machine's local zone is used, resolved at each instant with
the offset that applied at that instant (DST included), not today's offset.

Storage format for timestamps is integer milliseconds since the Unix epoch.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLI = timedelta(milliseconds=1)


def now_in(tz: tzinfo | None = None) -> datetime:
    """Current instant as an aware datetime in tz (or local time)."""
    return datetime.now(timezone.utc).astimezone(tz)


def ensure_aware(ts: datetime, tz: tzinfo | None = None) -> datetime:
    """Attach tz to a naive datetime, or read it as local wall-clock time."""
    if ts.tzinfo is not None:
        return ts
    if tz is not None:
        return ts.replace(tzinfo=tz)
    return ts.astimezone()


def civil_date(ts: datetime, tz: tzinfo | None = None) -> date:
    return ensure_aware(ts, tz).astimezone(tz).date()


def day_bounds(day: date, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """Half-open [start, end) of a civil day as aware datetimes."""
    next_day = day + timedelta(days=1)
    if tz is not None:
        return (
            datetime.combine(day, time.min, tzinfo=tz),
            datetime.combine(next_day, time.min, tzinfo=tz),
        )
    # Each midnight gets its own local offset, so DST days span 23 or 25 hours.
    return (
        datetime.combine(day, time.min).astimezone(),
        datetime.combine(next_day, time.min).astimezone(),
    )


def truncate_to_millis(ts: datetime) -> datetime:
    """Drop sub-millisecond precision, matching what the store keeps."""
    return ts.replace(microsecond=ts.microsecond // 1000 * 1000)


def to_millis(ts: datetime) -> int:
    return (ensure_aware(ts) - _EPOCH) // _MILLI


def from_millis(ms: int | float, tz: tzinfo | None = None) -> datetime:
    return (_EPOCH + int(ms) * _MILLI).astimezone(tz)
