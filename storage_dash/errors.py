"""Domain exceptions and their HTTP rendering.

Service code raises these; ``register_exception_handlers`` turns each one into
a JSON ``{"detail": ...}`` response with the status code it carries.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(AppError):
    """The requested month, unit, customer, or user does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, message: str | None = None) -> None:
        self.resource = resource
        super().__init__(message or f"{resource} not found")


class ValidationError(AppError):
    """Input that is malformed and cannot be defaulted."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(AppError):
    """The request clashes with the current state of a resource."""

    status_code = status.HTTP_409_CONFLICT


class ForbiddenError(AppError):
    """The caller's role does not grant the requested action."""

    status_code = status.HTTP_403_FORBIDDEN


class AggregationFailure(AppError):
    """The store failed while computing or persisting a monthly snapshot."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON renderer for every ``AppError`` subclass."""
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
