"""
Date / time helpers shared by the attendance service and the reports.

All timestamps are stored as UTC.  "Local" means the fixed offset
configured by ``settings.TIMEZONE_OFFSET``.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from workforce.core.config import settings


def parse_offset(tz_offset: str) -> timezone:
    """Turn ``"+05:00"`` / ``"-0330"`` / ``"+02"`` into a fixed ``timezone``."""
    sign = 1 if tz_offset[0] == "+" else -1
    body = tz_offset[1:].replace(":", "")
    offset_hours = int(body[:2])
    offset_mins = int(body[2:4]) if len(body) > 2 else 0
    return timezone(timedelta(hours=sign * offset_hours, minutes=sign * offset_mins))


def local_tz() -> timezone:
    return parse_offset(settings.TIMEZONE_OFFSET)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Normalise a timestamp to UTC-aware.

    Naive values are taken to be UTC (SQLite hands back naive datetimes
    for what we stored as UTC).
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def from_device(dt: datetime) -> datetime:
    """UTC view of a device-supplied timestamp; naive values are local time."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=local_tz())
    return dt.astimezone(timezone.utc)


def local_day(ts: datetime) -> date:
    """Calendar day of *ts* in the configured local offset."""
    return ensure_utc(ts).astimezone(local_tz()).date()


def day_window(day: date) -> tuple[datetime, datetime]:
    """``[local midnight, local midnight + 1 day)`` of *day*, as UTC bounds."""
    start = datetime.combine(day, time.min, tzinfo=local_tz())
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def resolve_target_date(date_str: str | None, now: datetime | None = None) -> date:
    """Parse ``YYYY-MM-DD`` or fall back to today (local).

    Raises ``ValueError`` on malformed input.
    """
    if not date_str:
        return local_day(now or utcnow())
    date_str = date_str.strip()
    if len(date_str) != 10:
        raise ValueError(f"Expected YYYY-MM-DD, got {date_str!r}")
    parsed = date.fromisoformat(date_str)
    if not date.min + timedelta(days=1) < parsed < date.max - timedelta(days=1):
        raise ValueError(f"Date out of range: {parsed}")
    return parsed


def hours_between(start: datetime, end: datetime) -> float:
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 3600
