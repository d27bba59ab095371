"""Pydantic schemas for attendance actions, history and reports.

Wire format uses camelCase keys (``checkIn``, ``hasData`` ...).
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from workforce.core.clock import ensure_utc


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _clean_label(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if len(v) > 64:
        raise ValueError("Timezone label must not exceed 64 characters")
    return v or None


TimezoneLabel = Annotated[Optional[str], AfterValidator(_clean_label)]
# Stored timestamps are UTC; SQLite hands them back naive
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


# ── Check-in / check-out ────────────────────────────────────────────
class CheckInRequest(CamelModel):
    # Optional at the schema level so a missing value maps to MissingDeviceTime
    check_in: datetime | None = None
    timezone: TimezoneLabel = None


class CheckOutRequest(CamelModel):
    check_out: datetime | None = None
    timezone: TimezoneLabel = None


class AttendanceRead(CamelModel):
    id: int
    user_id: int
    check_in: UtcDatetime
    check_out: UtcDatetime | None = None
    working_hours: float | None = None
    check_in_timezone: str | None = None
    check_out_timezone: str | None = None
    check_in_recorded_at: UtcDatetime | None = None
    check_out_recorded_at: UtcDatetime | None = None


class CheckOutResponse(AttendanceRead):
    tier: str
    summary: str


# ── Department reports ──────────────────────────────────────────────
class DepartmentReport(CamelModel):
    department: str
    present: int
    absent: int
    total: int
    percentage: str


class CohortTotals(CamelModel):
    present: int
    absent: int
    total: int
    percentage: str


class DepartmentReportSet(CamelModel):
    date: str
    has_data: bool
    employee_reports: list[DepartmentReport]
    manager_reports: list[DepartmentReport]
    employee_totals: CohortTotals
    manager_totals: CohortTotals
    unassigned_users: int = 0


# ── Team view ───────────────────────────────────────────────────────
class TeamMemberAttendance(CamelModel):
    user_id: int
    name: str
    email: str
    status: str  # Present | Absent
    check_in: UtcDatetime | None = None
    check_out: UtcDatetime | None = None
    working_hours: float | None = None


class TeamAttendanceReport(CamelModel):
    department: str
    date: str
    present: int
    absent: int
    total: int
    attendance_rate: str
    members: list[TeamMemberAttendance] = Field(default_factory=list)


# ── Stats ───────────────────────────────────────────────────────────
class AttendanceStats(CamelModel):
    num_employees: int
    total_records: int
    completed_records: int
    attendance_percent: float


# ── Health / Generic ────────────────────────────────────────────────
class HealthResponse(BaseModel):
    db: bool
    redis: bool


class LogoutResponse(BaseModel):
    message: str
