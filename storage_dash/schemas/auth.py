"""Request and response bodies for the ``/api/v1/auth`` routes."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"
ROLE_PATTERN = "^(admin|manager|staff)$"

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Public sign-up. New accounts are always ``staff``; an admin promotes them."""

    username: str = Field(..., min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class ProfileUpdateRequest(BaseModel):
    """Either field may be omitted to keep its current value."""

    username: str | None = Field(None, min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: EmailStr | None = None


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)


class RoleUpdateRequest(BaseModel):
    role: str = Field(..., pattern=ROLE_PATTERN)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """A dashboard user as seen by clients; never includes the password hash."""

    id: uuid.UUID
    username: str
    email: str
    role: str
    is_active: bool
    last_login: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    """Body of a successful register or login."""

    user: UserResponse
    tokens: TokenResponse


class MessageResponse(BaseModel):
    message: str
