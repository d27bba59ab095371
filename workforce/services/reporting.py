"""
Reporting engine: per-department presence for a single local day.

Each report fetches users and the day's records in one query apiece and
aggregates in Python.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.core.clock import day_window, ensure_utc, hours_between
from workforce.models.attendance import AttendanceRecord
from workforce.models.user import DEPARTMENTS, Role, User
from workforce.schemas.attendance import (AttendanceStats, CohortTotals,
                                          DepartmentReport,
                                          DepartmentReportSet,
                                          TeamAttendanceReport,
                                          TeamMemberAttendance)
from workforce.services.directory import list_users

logger = logging.getLogger(__name__)

PRESENT = "Present"
ABSENT = "Absent"


def format_rate(present: int, total: int) -> str:
    """``present / total`` as a percentage with one decimal, ``"0.0"`` when empty."""
    if total == 0:
        return "0.0"
    return f"{present / total * 100:.1f}"


async def _records_in_window(
    db: AsyncSession, target: date, user_ids: list[int] | None = None
) -> list[AttendanceRecord]:
    start, end = day_window(target)
    query = (
        select(AttendanceRecord)
        .where(AttendanceRecord.check_in >= start, AttendanceRecord.check_in < end)
        .order_by(AttendanceRecord.check_in.asc(), AttendanceRecord.id.asc())
    )
    if user_ids is not None:
        if not user_ids:
            return []
        query = query.where(AttendanceRecord.user_id.in_(user_ids))
    result = await db.execute(query)
    return list(result.scalars().all())


def _cohort_report(
    users: list[User], present_ids: set[int]
) -> tuple[list[DepartmentReport], CohortTotals]:
    by_department: dict[str, list[User]] = defaultdict(list)
    for user in users:
        by_department[user.department].append(user)

    rows = []
    for department in DEPARTMENTS:
        members = by_department.get(department, [])
        total = len(members)
        present = sum(1 for u in members if u.id in present_ids)
        rows.append(
            DepartmentReport(
                department=department,
                present=present,
                absent=total - present,
                total=total,
                percentage=format_rate(present, total),
            )
        )

    total = sum(r.total for r in rows)
    present = sum(r.present for r in rows)
    return rows, CohortTotals(
        present=present,
        absent=total - present,
        total=total,
        percentage=format_rate(present, total),
    )


# ── Department / cohort report ──────────────────────────────────────
async def get_attendance_reports(db: AsyncSession, target: date) -> DepartmentReportSet:
    """Presence per department for Employees and Managers on *target*.

    Admins are not expected to attend.  Users without a department cannot
    be grouped; they are counted in ``unassigned_users`` and left out of
    every row and total.
    """
    users = await list_users(db, roles=[Role.EMPLOYEE.value, Role.MANAGER.value])
    records = await _records_in_window(db, target)
    present_ids = {r.user_id for r in records}

    cohorts: dict[str, list[User]] = {Role.EMPLOYEE.value: [], Role.MANAGER.value: []}
    unassigned = 0
    for user in users:
        if user.department not in DEPARTMENTS:
            unassigned += 1
            continue
        cohorts[user.role].append(user)

    if unassigned:
        logger.warning(
            "%d user(s) without a department left out of the %s report",
            unassigned,
            target.isoformat(),
        )

    employee_rows, employee_totals = _cohort_report(cohorts[Role.EMPLOYEE.value], present_ids)
    manager_rows, manager_totals = _cohort_report(cohorts[Role.MANAGER.value], present_ids)

    return DepartmentReportSet(
        date=target.isoformat(),
        has_data=bool(records),
        employee_reports=employee_rows,
        manager_reports=manager_rows,
        employee_totals=employee_totals,
        manager_totals=manager_totals,
        unassigned_users=unassigned,
    )


# ── Team view ───────────────────────────────────────────────────────
async def get_team_attendance(
    db: AsyncSession, department: str, target: date
) -> TeamAttendanceReport:
    """Per-member presence for the Employees of one department."""
    members = await list_users(db, role=Role.EMPLOYEE.value, department=department)
    records = await _records_in_window(db, target, [m.id for m in members])

    # First record of the day wins
    first_by_user: dict[int, AttendanceRecord] = {}
    for record in records:
        first_by_user.setdefault(record.user_id, record)

    rows = []
    for member in members:
        record = first_by_user.get(member.id)
        if record is None:
            rows.append(
                TeamMemberAttendance(
                    user_id=member.id, name=member.name, email=member.email, status=ABSENT
                )
            )
            continue
        check_in = ensure_utc(record.check_in) if record.check_in else None
        check_out = ensure_utc(record.check_out) if record.check_out else None
        # Recomputed from the timestamps so partial rows never carry stale hours
        hours = (
            round(hours_between(check_in, check_out), 2)
            if check_in is not None and check_out is not None
            else None
        )
        rows.append(
            TeamMemberAttendance(
                user_id=member.id,
                name=member.name,
                email=member.email,
                status=PRESENT,
                check_in=check_in,
                check_out=check_out,
                working_hours=hours,
            )
        )

    total = len(rows)
    present = sum(1 for r in rows if r.status == PRESENT)
    return TeamAttendanceReport(
        department=department,
        date=target.isoformat(),
        present=present,
        absent=total - present,
        total=total,
        attendance_rate=format_rate(present, total),
        members=rows,
    )


# ── Overall stats ───────────────────────────────────────────────────
async def get_attendance_stats(db: AsyncSession) -> AttendanceStats:
    """Headcount plus the share of records that were closed with hours worked."""
    num_employees = await db.execute(
        select(func.count(User.id)).where(User.role == Role.EMPLOYEE.value)
    )
    total_records = await db.execute(select(func.count(AttendanceRecord.id)))
    completed_records = await db.execute(
        select(func.count(AttendanceRecord.id)).where(AttendanceRecord.working_hours > 0)
    )

    total = total_records.scalar() or 0
    completed = completed_records.scalar() or 0
    return AttendanceStats(
        num_employees=num_employees.scalar() or 0,
        total_records=total,
        completed_records=completed,
        attendance_percent=round(completed / total * 100, 2) if total else 0.0,
    )
