"""FastAPI authentication dependencies for route protection."""

import uuid

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storage_dash.auth.jwt import ACCESS, decode_token
from storage_dash.config import Settings
from storage_dash.database import get_db
from storage_dash.models.user import User

# Missing tokens are reported as 401 by get_current_user, not 403 by HTTPBearer
_bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    """Return the ``Settings`` instance the application was built with."""
    return request.app.state.settings


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """Extract and validate the Bearer token, then return the authenticated user.

    Raises:
        HTTPException 401: If the token is missing, invalid, expired, of the
            wrong type, or the user no longer exists.
    """
    if credentials is None:
        raise _unauthorized("Access token required")

    try:
        payload = decode_token(credentials.credentials, settings)
    except ExpiredSignatureError:
        raise _unauthorized("Token has expired") from None
    except JWTError:
        raise _unauthorized("Could not validate credentials") from None

    # Only accept access tokens, not refresh tokens
    if payload.get("type") != ACCESS:
        raise _unauthorized("Invalid token type")

    sub: str | None = payload.get("sub")
    if sub is None:
        raise _unauthorized("Could not validate credentials")

    try:
        user_id = uuid.UUID(sub)
    except ValueError:
        raise _unauthorized("Could not validate credentials") from None

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise _unauthorized("Could not validate credentials")

    return user


async def get_current_active_user(
    user: User = Depends(get_current_user),
) -> User:
    """Return the current user only if their account is active.

    Raises:
        HTTPException 403: If the user account is deactivated.
    """
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )
    return user
