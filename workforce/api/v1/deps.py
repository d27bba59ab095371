"""
FastAPI dependencies: auth guards, capability checks and database session.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.core.config import settings
from workforce.core.policy import Capability, has_capability
from workforce.core.security import decode_access_token
from workforce.models.user import User
from workforce.schemas.token import TokenPayload
from workforce.services.directory import get_user

# auto_error=False so we can fall back to the cookie if the header is missing
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_PREFIX}/auth/login", auto_error=False
)


# ── Database session ────────────────────────────────────────────────
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session from the app's ``Database`` (built in ``create_app``)."""
    async for session in request.app.state.database.session():
        yield session


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),  # HttpOnly cookie
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode JWT from Header OR Cookie, look up user."""

    # Priority: Header > Cookie
    final_token = token
    if not final_token and access_token:
        # Cookie is written as "Bearer <token>"
        if access_token.startswith("Bearer "):
            final_token = access_token.split(" ", 1)[1]
        else:
            final_token = access_token

    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not final_token:
        raise credentials_exc

    decoded = decode_access_token(final_token)
    if decoded is None:
        raise credentials_exc

    payload = TokenPayload(**decoded)
    if payload.sub is None or not payload.sub.isdigit():
        raise credentials_exc

    user = await get_user(db, int(payload.sub))
    if user is None:
        raise credentials_exc
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Reject accounts that are not (or no longer) approved."""
    if not current_user.can_sign_in:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account pending approval. Please contact admin.",
        )
    return current_user


def require_capability(capability: Capability) -> Callable[..., Awaitable[User]]:
    """Dependency factory: the caller's role must grant *capability*."""

    async def _guard(current_user: User = Depends(get_current_active_user)) -> User:
        if not has_capability(current_user.role, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{current_user.role}' may not perform '{capability.value}'",
            )
        return current_user

    return _guard


require_admin = require_capability(Capability.MANAGE_USERS)
