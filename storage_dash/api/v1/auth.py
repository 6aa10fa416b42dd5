"""Auth API router: register, login, refresh, profile, password, logout, roles."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storage_dash.api.deps import get_current_active_user, get_db, get_settings
from storage_dash.auth import permissions
from storage_dash.auth.jwt import REFRESH, create_token_pair, decode_token
from storage_dash.auth.passwords import verify_password
from storage_dash.auth.permissions import ensure_permission
from storage_dash.config import Settings
from storage_dash.models.user import User
from storage_dash.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    RoleUpdateRequest,
    TokenResponse,
    UserResponse,
)
from storage_dash.services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _tokens_for(user: User, settings: Settings) -> TokenResponse:
    return TokenResponse(**create_token_pair(str(user.id), settings, role=user.role))


def _invalid_refresh(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ---------------------------------------------------------------------------
# POST /register
# ---------------------------------------------------------------------------


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    """Register a new ``staff`` user with username, email, and password."""
    user = await user_service.create_user(
        db,
        username=body.username,
        email=body.email,
        password=body.password,
    )
    return AuthResponse(user=UserResponse.model_validate(user), tokens=_tokens_for(user, settings))


# ---------------------------------------------------------------------------
# POST /login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    """Authenticate with email and password."""
    user = await user_service.authenticate(db, body.email, body.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    await user_service.record_login(db, user)

    return AuthResponse(user=UserResponse.model_validate(user), tokens=_tokens_for(user, settings))


# ---------------------------------------------------------------------------
# POST /refresh
# ---------------------------------------------------------------------------


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> TokenResponse:
    """Exchange a valid refresh token for a new token pair."""
    try:
        payload = decode_token(body.refresh_token, settings)
    except JWTError:
        raise _invalid_refresh("Invalid or expired refresh token") from None

    if payload.get("type") != REFRESH:
        raise _invalid_refresh("Invalid token type")

    try:
        user_id = uuid.UUID(payload.get("sub") or "")
    except ValueError:
        raise _invalid_refresh("Invalid token payload") from None

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise _invalid_refresh("User not found or inactive")

    return _tokens_for(user, settings)


# ---------------------------------------------------------------------------
# /me
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_active_user)) -> UserResponse:
    """Return the currently authenticated user's profile."""
    return UserResponse.model_validate(current_user)


@router.put("/me", response_model=UserResponse)
async def update_me(
    body: ProfileUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UserResponse:
    """Change the current user's username and/or email."""
    user = await user_service.update_profile(db, current_user, username=body.username, email=body.email)
    return UserResponse.model_validate(user)


@router.put("/password", response_model=MessageResponse)
async def change_password(
    body: PasswordChangeRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MessageResponse:
    """Change the current user's password after checking the old one."""
    if not verify_password(body.current_password, current_user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Current password is incorrect",
        )

    await user_service.change_password(db, current_user, body.new_password)
    return MessageResponse(message="Password changed successfully")


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: User = Depends(get_current_active_user)) -> MessageResponse:
    """Acknowledge logout. Tokens are stateless; the client discards them."""
    logger.info("User %s logged out", current_user.id)
    return MessageResponse(message="Logged out successfully")


# ---------------------------------------------------------------------------
# PUT /users/{user_id}/role
# ---------------------------------------------------------------------------


@router.put("/users/{user_id}/role", response_model=UserResponse)
async def update_role(
    user_id: uuid.UUID,
    body: RoleUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UserResponse:
    """Assign ``admin``, ``manager`` or ``staff`` to an account. Admins only.

    Permission checks read the stored role, so the change applies to the user's next request.
    """
    ensure_permission(current_user, permissions.USERS_MANAGE)
    user = await user_service.get_user_or_404(db, user_id)
    user = await user_service.set_role(db, user, body.role)
    return UserResponse.model_validate(user)
