"""
Attendance endpoints: check-in / check-out, history, reports, team view.

- check-in / check-out: Managers and Employees (Admins do not clock in).
- history: any authenticated user, own records only.
- reports / stats / CSV: Admins and Managers.
- team view: Managers.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.api.v1.deps import get_db, require_capability
from workforce.core.clock import resolve_target_date
from workforce.core.policy import Capability
from workforce.models.user import DEPARTMENTS, User
from workforce.schemas.attendance import (AttendanceRead, AttendanceStats,
                                          CheckInRequest, CheckOutRequest,
                                          CheckOutResponse,
                                          DepartmentReportSet,
                                          TeamAttendanceReport)
from workforce.services import attendance as attendance_service
from workforce.services import reporting

router = APIRouter(prefix="/attendance", tags=["attendance"])
logger = logging.getLogger(__name__)


def _target_date(date_str: str | None) -> date:
    try:
        return resolve_target_date(date_str)
    except ValueError:
        raise HTTPException(
            status_code=400, detail="Invalid date. Expected YYYY-MM-DD"
        ) from None


# ── Check-in / check-out ────────────────────────────────────────────
@router.post("/checkin", response_model=AttendanceRead)
async def check_in(
    body: CheckInRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_capability(Capability.RECORD_ATTENDANCE)),
) -> AttendanceRead:
    """Open today's attendance record at the device-reported time."""
    record = await attendance_service.check_in(db, user.id, body.check_in, body.timezone)
    return AttendanceRead.model_validate(record)


@router.post("/checkout", response_model=CheckOutResponse)
async def check_out(
    body: CheckOutRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_capability(Capability.RECORD_ATTENDANCE)),
) -> CheckOutResponse:
    """Close the open record; the response carries a working-hours summary."""
    record = await attendance_service.check_out(db, user.id, body.check_out, body.timezone)
    hours = record.working_hours or 0.0
    return CheckOutResponse(
        **AttendanceRead.model_validate(record).model_dump(),
        tier=attendance_service.classify_session(hours),
        summary=attendance_service.summarize_session(hours),
    )


@router.get("/history", response_model=list[AttendanceRead])
async def history(
    skip: int = Query(default=0, ge=0),
    limit: int | None = Query(default=None, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_capability(Capability.VIEW_HISTORY)),
) -> list[AttendanceRead]:
    """Caller's records, newest first."""
    records = await attendance_service.get_history(db, user.id, skip=skip, limit=limit)
    return [AttendanceRead.model_validate(r) for r in records]


# ── Reports ─────────────────────────────────────────────────────────
@router.get("/reports", response_model=DepartmentReportSet)
async def reports(
    date_str: str | None = Query(default=None, alias="date", description="YYYY-MM-DD"),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_capability(Capability.VIEW_REPORTS)),
) -> DepartmentReportSet:
    """Department presence for Employees and Managers on one day."""
    return await reporting.get_attendance_reports(db, _target_date(date_str))


@router.get("/reports/csv")
async def reports_csv(
    date_str: str | None = Query(default=None, alias="date", description="YYYY-MM-DD"),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_capability(Capability.VIEW_REPORTS)),
) -> StreamingResponse:
    """Export the department report as a CSV file download."""
    report = await reporting.get_attendance_reports(db, _target_date(date_str))

    def iter_csv():
        yield "cohort,department,present,absent,total,percentage\n"
        for cohort, rows, totals in (
            ("Employee", report.employee_reports, report.employee_totals),
            ("Manager", report.manager_reports, report.manager_totals),
        ):
            for row in rows:
                yield f"{cohort},{row.department},{row.present},{row.absent},{row.total},{row.percentage}\n"
            yield f"{cohort},TOTAL,{totals.present},{totals.absent},{totals.total},{totals.percentage}\n"

    return StreamingResponse(
        iter_csv(),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename=attendance_report_{report.date}.csv"
        },
    )


@router.get("/stats", response_model=AttendanceStats)
async def stats(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_capability(Capability.VIEW_REPORTS)),
) -> AttendanceStats:
    return await reporting.get_attendance_stats(db)


# ── Team view ───────────────────────────────────────────────────────
@router.get("/team/{department}", response_model=TeamAttendanceReport)
async def team_attendance(
    department: str,
    date_str: str | None = Query(default=None, alias="date", description="YYYY-MM-DD"),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_capability(Capability.VIEW_TEAM)),
) -> TeamAttendanceReport:
    """Per-member attendance for the Employees of *department*."""
    if department not in DEPARTMENTS:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown department. Must be one of: {', '.join(DEPARTMENTS)}",
        )
    return await reporting.get_team_attendance(db, department, _target_date(date_str))
