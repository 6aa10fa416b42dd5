"""Lenient pagination parameters.

Malformed ``page``/``limit`` values fall back to defaults instead of failing
the request; ``limit`` is clamped to the configured maximum.
"""

import math
from dataclasses import dataclass

from fastapi import Depends, Query

from storage_dash.auth.dependencies import get_settings
from storage_dash.config import Settings


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def pages(self, total: int) -> int:
        return math.ceil(total / self.limit) if total else 0


def parse_int(value: str | None, default: int) -> int:
    """Parse ``value`` as an int, returning ``default`` for missing or non-numeric input."""
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def resolve_pagination(page: str | None, limit: str | None, settings: Settings) -> Pagination:
    page_num = max(1, parse_int(page, 1))
    limit_num = parse_int(limit, settings.pagination_default_limit)
    if limit_num < 1:
        limit_num = settings.pagination_default_limit
    return Pagination(page=page_num, limit=min(limit_num, settings.pagination_max_limit))


def get_pagination(
    page: str | None = Query(None, description="1-based page number"),
    limit: str | None = Query(None, description="Items per page"),
    settings: Settings = Depends(get_settings),
) -> Pagination:
    """FastAPI dependency wrapping ``resolve_pagination``."""
    return resolve_pagination(page, limit, settings)


def resolve_months(months: str | None, default: int, maximum: int = 120) -> int:
    """Parse a ``months`` window parameter, defaulting on bad input."""
    value = parse_int(months, default)
    if value < 1:
        return default
    return min(value, maximum)
