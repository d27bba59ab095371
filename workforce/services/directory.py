"""
User directory lookups consumed by the attendance subsystem.

Read-only: attendance code never writes to ``users``.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.models.user import User


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def list_users(
    db: AsyncSession,
    role: str | None = None,
    department: str | None = None,
    roles: list[str] | None = None,
    status: str | None = None,
) -> list[User]:
    """All users, optionally filtered by role(s), department and approval status."""
    query = select(User).order_by(User.name, User.id)
    if role is not None:
        query = query.where(User.role == role)
    if roles:
        query = query.where(User.role.in_(roles))
    if department is not None:
        query = query.where(User.department == department)
    if status is not None:
        query = query.where(User.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())
