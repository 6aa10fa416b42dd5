"""Signed access and refresh tokens (HS256 by default) via python-jose."""

from datetime import datetime, timedelta, timezone

from jose import jwt

from storage_dash.config import Settings

ACCESS = "access"
REFRESH = "refresh"


def _encode(claims: dict, settings: Settings, lifetime: timedelta, token_type: str) -> str:
    issued_at = datetime.now(timezone.utc)
    payload = {**claims, "iat": issued_at, "exp": issued_at + lifetime, "type": token_type}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(data: dict, settings: Settings, expires_delta: timedelta | None = None) -> str:
    """Sign an access token carrying ``data`` (normally ``sub`` and ``role``).

    Lifetime is ``expires_delta`` when given, otherwise
    ``settings.jwt_access_token_expire_minutes``.
    """
    lifetime = expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    return _encode(data, settings, lifetime, ACCESS)


def create_refresh_token(data: dict, settings: Settings, expires_delta: timedelta | None = None) -> str:
    """Sign a refresh token; lifetime defaults to ``settings.jwt_refresh_token_expire_days``."""
    lifetime = expires_delta or timedelta(days=settings.jwt_refresh_token_expire_days)
    return _encode(data, settings, lifetime, REFRESH)


def decode_token(token: str, settings: Settings) -> dict:
    """Verify the signature and expiry of ``token`` and return its claims.

    Raises:
        jose.ExpiredSignatureError: The token is past its ``exp``.
        jose.JWTError: Any other signature or format problem.
    """
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def create_token_pair(user_id: str, settings: Settings, role: str | None = None) -> dict[str, str]:
    """Issue the access/refresh pair handed out by register, login and refresh.

    Only the access token carries ``role``; the refresh token identifies the
    user and nothing else.
    """
    access_claims = {"sub": user_id}
    if role is not None:
        access_claims["role"] = role
    return {
        "access_token": create_access_token(access_claims, settings),
        "refresh_token": create_refresh_token({"sub": user_id}, settings),
        "token_type": "bearer",
    }
