"""Application configuration using pydantic-settings.

A single ``Settings`` instance is built at process start (see
``storage_dash.main.create_app``) and handed to whatever needs it.
"""

import warnings

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_JWT_DEFAULT = "change-me-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "Storage Dash"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"  # development, staging, production, test
    log_level: str = "INFO"

    # Database (PostgreSQL in production, SQLite for local development and tests)
    database_url: str = "sqlite+aiosqlite:///./storage_dash.db"
    create_tables_on_startup: bool = False

    # JWT Auth
    jwt_secret_key: str = _INSECURE_JWT_DEFAULT
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24
    jwt_refresh_token_expire_days: int = 7

    # Pagination
    pagination_default_limit: int = 20
    pagination_max_limit: int = 100

    # Dashboard
    dashboard_history_months: int = 12

    # Frontend
    frontend_url: str = "http://localhost:5173"
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    @model_validator(mode="after")
    def _ensure_frontend_in_cors(self) -> "Settings":
        """Ensure the configured frontend_url is always in cors_origins."""
        if self.frontend_url and self.frontend_url not in self.cors_origins:
            self.cors_origins.append(self.frontend_url)
        return self

    @model_validator(mode="after")
    def _validate_secrets(self) -> "Settings":
        """Reject insecure JWT secret in production and warn in development."""
        if self.jwt_secret_key == _INSECURE_JWT_DEFAULT:
            if self.environment == "production":
                raise ValueError(
                    "JWT_SECRET_KEY must be set to a strong random value in production. "
                    'Generate one with: python -c "import secrets; print(secrets.token_urlsafe(64))"'
                )
            warnings.warn(
                "Using default JWT secret, which is only acceptable for local development. "
                "Set JWT_SECRET_KEY in your .env file.",
                UserWarning,
                stacklevel=1,
            )
        return self

    @model_validator(mode="after")
    def _validate_pagination(self) -> "Settings":
        if self.pagination_default_limit < 1 or self.pagination_max_limit < self.pagination_default_limit:
            raise ValueError("pagination_max_limit must be >= pagination_default_limit >= 1")
        return self

    @property
    def async_database_url(self) -> str:
        """Ensure the database URL uses an async driver."""
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("sqlite:///"):
            url = url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return url

    @property
    def is_sqlite(self) -> bool:
        return self.async_database_url.startswith("sqlite")
