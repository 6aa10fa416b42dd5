"""Storage Dash: FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storage_dash.api.v1.auth import router as auth_router
from storage_dash.api.v1.customers import router as customers_router
from storage_dash.api.v1.metrics import router as metrics_router
from storage_dash.api.v1.units import router as units_router
from storage_dash.config import Settings
from storage_dash.database import Database
from storage_dash.errors import register_exception_handlers

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure the root logger so all storage_dash.* loggers output to stderr."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Optionally create tables on startup; always dispose the engine on shutdown."""
    database: Database = app.state.database
    if app.state.settings.create_tables_on_startup:
        await database.create_all()
        logger.info("Database tables ensured")
    yield
    await database.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application around one ``Settings`` instance and its database."""
    settings = settings or Settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Occupancy, revenue, and churn dashboard API for self-storage facilities.",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = Database(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # Routers
    app.include_router(auth_router)
    app.include_router(units_router)
    app.include_router(customers_router)
    app.include_router(metrics_router)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "service": settings.app_name}

    @app.get("/", tags=["root"])
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
        }

    return app
