"""Role-based authorization policy.

Handlers call ``ensure_permission(user, action)`` as their first statement;
the decision itself is the pure function ``has_permission``.
"""

from storage_dash.errors import ForbiddenError
from storage_dash.models.user import User

ROLES: tuple[str, ...] = ("admin", "manager", "staff")

# Actions
UNITS_READ = "units:read"
UNITS_WRITE = "units:write"
UNITS_DELETE = "units:delete"
UNITS_RENT = "units:rent"
CUSTOMERS_READ = "customers:read"
CUSTOMERS_WRITE = "customers:write"
CUSTOMERS_DELETE = "customers:delete"
METRICS_READ = "metrics:read"
METRICS_CALCULATE = "metrics:calculate"
USERS_MANAGE = "users:manage"

_STAFF_ACTIONS = frozenset({UNITS_READ, CUSTOMERS_READ, METRICS_READ})

_MANAGER_ACTIONS = _STAFF_ACTIONS | {UNITS_WRITE, UNITS_RENT, CUSTOMERS_WRITE, METRICS_CALCULATE}

_ADMIN_ACTIONS = _MANAGER_ACTIONS | {UNITS_DELETE, CUSTOMERS_DELETE, USERS_MANAGE}

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "staff": _STAFF_ACTIONS,
    "manager": _MANAGER_ACTIONS,
    "admin": _ADMIN_ACTIONS,
}


def has_permission(role: str, action: str) -> bool:
    """Return whether ``role`` may perform ``action``. Unknown roles get nothing."""
    return action in ROLE_PERMISSIONS.get(role, frozenset())


def ensure_permission(user: User, action: str) -> None:
    """Raise ``ForbiddenError`` unless the user's role grants ``action``."""
    if not has_permission(user.role, action):
        raise ForbiddenError("Insufficient permissions for this action")
