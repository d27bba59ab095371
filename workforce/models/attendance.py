"""
AttendanceRecord model: one check-in/check-out cycle per user per day.

Uniqueness is enforced by the database:
  * a partial unique index allows a single open record (no check-out) per user
  * ``(user_id, check_in_day)`` allows a single check-in per local calendar day
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (Column, DateTime, Float, ForeignKey, Index, Integer,
                        String, UniqueConstraint, text)
from sqlalchemy.orm import relationship

from workforce.db.base import Base


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("user_id", "check_in_day", name="uq_attendance_user_day"),
        Index(
            "uq_attendance_open_per_user",
            "user_id",
            unique=True,
            postgresql_where=text("check_out IS NULL"),
            sqlite_where=text("check_out IS NULL"),
        ),
        Index("ix_attendance_user_check_in", "user_id", "check_in"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    check_in: datetime = Column(DateTime(timezone=True), nullable=False, index=True)  # type: ignore[assignment]
    check_out: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    working_hours: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    check_in_timezone: str | None = Column(String(64), nullable=True)  # type: ignore[assignment]
    check_out_timezone: str | None = Column(String(64), nullable=True)  # type: ignore[assignment]
    check_in_day: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # YYYY-MM-DD (local)
    # Server clock at the time of each action, kept for audit
    check_in_recorded_at: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    check_out_recorded_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]

    user = relationship("User", back_populates="attendance_records")

    @property
    def is_open(self) -> bool:
        return self.check_out is None
