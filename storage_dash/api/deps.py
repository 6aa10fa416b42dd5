"""Shared API dependencies: single import point for all routers.

Re-exports database session, settings, authentication and pagination
dependencies so that router modules can import everything they need from one
place::

    from storage_dash.api.deps import get_db, get_current_active_user
"""

from storage_dash.api.pagination import Pagination, get_pagination
from storage_dash.auth.dependencies import (
    get_current_active_user,
    get_current_user,
    get_settings,
)
from storage_dash.database import get_db

__all__ = [
    "Pagination",
    "get_db",
    "get_current_user",
    "get_current_active_user",
    "get_pagination",
    "get_settings",
]
