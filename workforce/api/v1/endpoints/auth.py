"""
Auth endpoints: registration, login (OAuth2 password flow), token refresh,
and admin-side user management.
"""

import logging

from fastapi import (APIRouter, Cookie, Depends, HTTPException, Query,
                     Request, Response, status)
from fastapi.security import OAuth2PasswordRequestForm
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workforce.api.v1.deps import get_current_active_user, get_db, require_admin
from workforce.core.config import settings
from workforce.core.security import (create_access_token, create_refresh_token,
                                     decode_refresh_token, get_password_hash,
                                     verify_password)
from workforce.models.user import DEPARTMENTS, Role, User, UserStatus
from workforce.schemas.attendance import LogoutResponse
from workforce.schemas.token import RefreshRequest, Token
from workforce.schemas.user import (RegisterResponse, UserCreate, UserRead,
                                    UserRegister, UserStatusUpdate)
from workforce.services.directory import get_user, list_users

# Rate limiter, keyed by client IP
limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _issue_tokens(response: Response, user: User) -> Token:
    """Mint an access/refresh pair and mirror it into HttpOnly cookies."""
    access_token = create_access_token(user.id, role=user.role)
    refresh_token = create_refresh_token(user.id)

    response.set_cookie(
        key="access_token",
        value=f"Bearer {access_token}",
        httponly=True,
        secure=settings.COOKIE_SECURE,  # Set to True in HTTPS production
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    response.set_cookie(
        key="refresh_token",
        value=refresh_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
    )

    return Token(access_token=access_token, refresh_token=refresh_token, role=user.role)


@router.post("/register", response_model=RegisterResponse, status_code=201)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def register(
    request: Request,
    body: UserRegister,
    db: AsyncSession = Depends(get_db),
) -> RegisterResponse:
    """Self-registration. Accounts start Pending until an admin approves them."""
    existing = await db.execute(select(User).where(User.email == body.email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(
        name=body.name,
        email=body.email,
        hashed_password=get_password_hash(body.password),
        role=body.role,
        phone=body.phone,
        department=body.department,
        status=UserStatus.PENDING.value,
    )
    db.add(user)
    await db.commit()
    logger.info("Registered %s (%s, %s) pending approval", user.email, user.role, user.department)
    return RegisterResponse(
        message="Account created and pending admin approval.",
        status=user.status,
    )


@router.post("/login", response_model=Token)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login_for_access_token(
    request: Request,
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
) -> Token:
    """Authenticate with email/password. Returns tokens and sets HttpOnly cookies."""
    result = await db.execute(
        select(User).where(User.email == form_data.username.lower().strip())
    )
    user = result.scalar_one_or_none()

    if user is None or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.can_sign_in:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account pending approval. Please contact admin.",
        )

    return _issue_tokens(response, user)


@router.post("/refresh", response_model=Token)
@limiter.limit("10/minute")
async def refresh_access_token_endpoint(
    response: Response,
    request: Request,
    body: RefreshRequest | None = None,
    refresh_token_cookie: str | None = Cookie(None, alias="refresh_token"),
    db: AsyncSession = Depends(get_db),
) -> Token:
    # Priority: Body > Cookie
    token_str = None
    if body and body.refresh_token:
        token_str = body.refresh_token
    elif refresh_token_cookie:
        token_str = refresh_token_cookie

    if not token_str:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token missing",
        )

    payload = decode_refresh_token(token_str)
    if payload is None or not str(payload.get("sub", "")).isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    user = await get_user(db, int(payload["sub"]))
    if user is None or not user.can_sign_in:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or not approved",
        )

    return _issue_tokens(response, user)


@router.post("/logout", response_model=LogoutResponse)
async def logout(response: Response) -> LogoutResponse:
    """Clear auth cookies and end the session."""
    response.delete_cookie("access_token")
    response.delete_cookie("refresh_token")
    return LogoutResponse(message="Logged out")


@router.get("/me", response_model=UserRead)
async def read_current_user(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Return profile of the currently authenticated user."""
    return current_user


# ── User management (admin-only) ───────────────────────────────────
@router.get("/users", response_model=list[UserRead])
async def list_accounts(
    status_filter: str | None = Query(default=None, alias="status"),
    role: str | None = Query(default=None),
    department: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[User]:
    """List accounts, e.g. ``?status=Pending`` for the approval queue."""
    if status_filter is not None and status_filter not in {s.value for s in UserStatus}:
        raise HTTPException(status_code=400, detail="Unknown status")
    if role is not None and role not in {r.value for r in Role}:
        raise HTTPException(status_code=400, detail="Unknown role")
    if department is not None and department not in DEPARTMENTS:
        raise HTTPException(status_code=400, detail="Unknown department")
    return await list_users(db, role=role, department=department, status=status_filter)


@router.post("/users", response_model=UserRead, status_code=201)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> User:
    """Create an approved account of any role (admin only)."""
    existing = await db.execute(select(User).where(User.email == body.email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(
        name=body.name,
        email=body.email,
        hashed_password=get_password_hash(body.password),
        role=body.role,
        phone=body.phone,
        department=body.department,
        status=UserStatus.APPROVED.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Admin created %s account %s", user.role, user.email)
    return user


@router.patch("/users/{user_id}/status", response_model=UserRead)
async def update_user_status(
    user_id: int,
    body: UserStatusUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> User:
    """Approve or reject a registration."""
    user = await get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    user.status = body.status
    await db.commit()
    await db.refresh(user)
    logger.info("User %d status set to %s", user_id, user.status)
    return user
