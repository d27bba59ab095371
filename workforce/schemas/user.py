"""Pydantic schemas for User registration / management."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, field_validator, model_validator

from workforce.models.user import DEPARTMENTS, Role, UserStatus

_VALID_ROLES = {r.value for r in Role}
_SELF_SERVICE_ROLES = {Role.MANAGER.value, Role.EMPLOYEE.value}
_VALID_STATUSES = {s.value for s in UserStatus}


def _normalise_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v:
        raise ValueError("Invalid email address")
    return v


def _check_department(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in DEPARTMENTS:
        raise ValueError(f"Department must be one of: {DEPARTMENTS}")
    return v


Email = Annotated[str, AfterValidator(_normalise_email)]
DepartmentName = Annotated[Optional[str], AfterValidator(_check_department)]


class UserCreate(BaseModel):
    """Admin-side account creation (any role, approved immediately)."""

    name: str
    email: Email
    password: str
    role: str = Role.EMPLOYEE.value
    phone: str | None = None
    department: DepartmentName = None

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str) -> str:
        if v not in _VALID_ROLES:
            raise ValueError(f"Role must be one of: {sorted(_VALID_ROLES)}")
        return v

    @field_validator("password")
    @classmethod
    def _validate_password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        if len(v.encode()) > 72:
            raise ValueError("Password must not exceed 72 bytes")
        return v

    @model_validator(mode="after")
    def _department_required(self) -> UserCreate:
        if self.role != Role.ADMIN.value and not self.department:
            raise ValueError("Department is required for non-Admin users")
        return self


class UserRegister(UserCreate):
    """Self-registration: Admin accounts cannot be created this way."""

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str) -> str:
        if v not in _SELF_SERVICE_ROLES:
            raise ValueError("Only Employee or Manager accounts can be registered")
        return v


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    phone: str | None
    role: str
    department: str | None
    status: str
    created_at: datetime | None

    model_config = {"from_attributes": True}


class UserStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def _validate_status(cls, v: str) -> str:
        if v not in _VALID_STATUSES:
            raise ValueError(f"Status must be one of: {sorted(_VALID_STATUSES)}")
        return v


class RegisterResponse(BaseModel):
    message: str
    status: str
