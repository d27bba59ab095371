"""
User model: identity, role, department and approval status.

The attendance subsystem only reads ``role`` and ``department``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from workforce.db.base import Base


class Role(str, Enum):
    ADMIN = "Admin"
    MANAGER = "Manager"
    EMPLOYEE = "Employee"


class Department(str, Enum):
    DESIGN = "Design"
    DEVELOPMENT = "Development"
    MARKETING = "Marketing"
    SALES = "Sales"
    HR = "HR"


class UserStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


DEPARTMENTS: list[str] = [d.value for d in Department]


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False, default="")  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    phone: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default=Role.EMPLOYEE.value,
        server_default=Role.EMPLOYEE.value,
    )  # Admin | Manager | Employee
    department: str | None = Column(String(50), nullable=True, index=True)  # type: ignore[assignment]
    status: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default=UserStatus.PENDING.value,
        server_default=UserStatus.PENDING.value,
    )  # Pending | Approved | Rejected
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    attendance_records = relationship(
        "AttendanceRecord",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def can_sign_in(self) -> bool:
        """Admins always may; everyone else needs approval."""
        return self.role == Role.ADMIN.value or self.status == UserStatus.APPROVED.value
