"""
Attendance service: check-in, check-out and history.

Device-supplied timestamps are always validated against the server clock.
Per-user uniqueness (one open record, one check-in per local day) is
enforced by the database; the reads below only produce friendlier errors
for the common, non-racing case.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.core.clock import (day_window, ensure_utc, from_device,
                                  hours_between, local_day, utcnow)
from workforce.core.config import settings
from workforce.core.exceptions import (AlreadyCheckedIn, CheckOutBeforeCheckIn,
                                       DuplicateCheckInForDay,
                                       ImplausibleDeviceTime,
                                       MissingDeviceTime, NoOpenCheckIn)
from workforce.models.attendance import AttendanceRecord

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE_LABEL = "UTC"

# (minimum hours, tier), checked top-down
SESSION_TIERS: tuple[tuple[float, str], ...] = (
    (8.0, "full day"),
    (6.0, "substantial"),
    (4.0, "half day"),
)
SHORT_SESSION = "short session"


# ── Helpers ─────────────────────────────────────────────────────────
def classify_session(hours: float) -> str:
    for minimum, tier in SESSION_TIERS:
        if hours >= minimum:
            return tier
    return SHORT_SESSION


def summarize_session(hours: float) -> str:
    """Human-readable line for a closed session, e.g. ``Worked 8h 30m (full day)``."""
    total_minutes = int(round(hours * 60))
    return f"Worked {total_minutes // 60}h {total_minutes % 60:02d}m ({classify_session(hours)})"


def _validate_device_time(device_time: datetime | None, now: datetime) -> datetime:
    if device_time is None:
        raise MissingDeviceTime()
    try:
        ts = from_device(device_time)
    except OverflowError:
        raise ImplausibleDeviceTime() from None
    tolerance = timedelta(hours=settings.DEVICE_TIME_TOLERANCE_HOURS)
    if abs(now - ts) > tolerance:
        raise ImplausibleDeviceTime()
    return ts


async def find_open_record(db: AsyncSession, user_id: int) -> AttendanceRecord | None:
    result = await db.execute(
        select(AttendanceRecord)
        .where(AttendanceRecord.user_id == user_id, AttendanceRecord.check_out.is_(None))
        .order_by(AttendanceRecord.check_in.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _has_check_in_between(
    db: AsyncSession, user_id: int, start: datetime, end: datetime
) -> bool:
    result = await db.execute(
        select(AttendanceRecord.id)
        .where(
            AttendanceRecord.user_id == user_id,
            AttendanceRecord.check_in >= start,
            AttendanceRecord.check_in < end,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


# ── Operations ──────────────────────────────────────────────────────
async def check_in(
    db: AsyncSession,
    user_id: int,
    device_time: datetime | None,
    timezone_label: str | None = None,
    now: datetime | None = None,
) -> AttendanceRecord:
    """Open a new attendance record at the device-supplied time."""
    now = ensure_utc(now) if now else utcnow()

    if await find_open_record(db, user_id) is not None:
        raise AlreadyCheckedIn()

    ts = _validate_device_time(device_time, now)

    day = local_day(ts)
    start, end = day_window(day)
    if await _has_check_in_between(db, user_id, start, end):
        raise DuplicateCheckInForDay()

    record = AttendanceRecord(
        user_id=user_id,
        check_in=ts,
        check_in_timezone=timezone_label or DEFAULT_TIMEZONE_LABEL,
        check_in_day=day.isoformat(),
        check_in_recorded_at=now,
    )
    db.add(record)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race against a concurrent check-in for the same user
        await db.rollback()
        if await find_open_record(db, user_id) is not None:
            raise AlreadyCheckedIn() from None
        raise DuplicateCheckInForDay() from None
    await db.refresh(record)

    logger.info("User %d checked in at %s (%s)", user_id, ts.isoformat(), record.check_in_timezone)
    return record


async def check_out(
    db: AsyncSession,
    user_id: int,
    device_time: datetime | None,
    timezone_label: str | None = None,
    now: datetime | None = None,
) -> AttendanceRecord:
    """Close the user's open record and fix its working hours."""
    now = ensure_utc(now) if now else utcnow()

    record = await find_open_record(db, user_id)
    if record is None:
        raise NoOpenCheckIn()

    ts = _validate_device_time(device_time, now)

    check_in_ts = ensure_utc(record.check_in)
    if ts <= check_in_ts:
        raise CheckOutBeforeCheckIn()

    hours = hours_between(check_in_ts, ts)
    result = await db.execute(
        update(AttendanceRecord)
        .where(AttendanceRecord.id == record.id, AttendanceRecord.check_out.is_(None))
        .values(
            check_out=ts,
            check_out_timezone=timezone_label or DEFAULT_TIMEZONE_LABEL,
            check_out_recorded_at=now,
            working_hours=hours,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # Closed by a concurrent request between the read and the update
        await db.rollback()
        raise NoOpenCheckIn()
    await db.commit()
    await db.refresh(record)

    logger.info("User %d checked out at %s after %.2fh", user_id, ts.isoformat(), hours)
    return record


async def get_history(
    db: AsyncSession,
    user_id: int,
    skip: int = 0,
    limit: int | None = None,
) -> list[AttendanceRecord]:
    """All of a user's records, newest check-in first."""
    query = (
        select(AttendanceRecord)
        .where(AttendanceRecord.user_id == user_id)
        .order_by(AttendanceRecord.check_in.desc(), AttendanceRecord.id.desc())
        .offset(skip)
    )
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())
