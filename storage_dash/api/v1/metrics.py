"""Metrics API router: monthly snapshots, dashboard summary, and reports."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storage_dash.api.deps import get_current_active_user, get_db, get_settings
from storage_dash.api.pagination import resolve_months
from storage_dash.auth import permissions
from storage_dash.auth.permissions import ensure_permission
from storage_dash.config import Settings
from storage_dash.models.user import User
from storage_dash.schemas.metrics import (
    CalculateResponse,
    DashboardResponse,
    OccupancyAnalyticsResponse,
    RevenueAnalyticsResponse,
    SnapshotListResponse,
    SnapshotResponse,
)
from storage_dash.services import metrics_service

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])


@router.get("", response_model=SnapshotListResponse, summary="List monthly snapshots")
async def list_metrics(
    start_month: str | None = Query(None, description="Inclusive lower bound, YYYY-MM"),
    end_month: str | None = Query(None, description="Inclusive upper bound, YYYY-MM"),
    limit: str | None = Query(None, description="Maximum number of months, default 12"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> SnapshotListResponse:
    """Return stored snapshots, most recent month first."""
    ensure_permission(current_user, permissions.METRICS_READ)
    snapshots = await metrics_service.list_snapshots(
        db,
        start_month=start_month,
        end_month=end_month,
        limit=resolve_months(limit, default=12),
    )
    return SnapshotListResponse(snapshots=[SnapshotResponse.model_validate(s) for s in snapshots])


@router.post("/calculate", response_model=CalculateResponse, summary="Compute the current month's snapshot")
async def calculate_metrics(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CalculateResponse:
    """Compute and upsert the snapshot for the current calendar month."""
    ensure_permission(current_user, permissions.METRICS_CALCULATE)
    snapshot, created = await metrics_service.compute_current_snapshot(db)
    return CalculateResponse(
        snapshot=SnapshotResponse.model_validate(snapshot),
        created=created,
        message="Metrics calculated and stored" if created else "Metrics updated",
    )


@router.get("/dashboard", response_model=DashboardResponse, summary="Dashboard overview")
async def get_dashboard(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    settings: Settings = Depends(get_settings),
) -> DashboardResponse:
    ensure_permission(current_user, permissions.METRICS_READ)
    return await metrics_service.build_dashboard(db, history=settings.dashboard_history_months)


@router.get("/revenue", response_model=RevenueAnalyticsResponse, summary="Revenue analytics")
async def get_revenue_analytics(
    months: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> RevenueAnalyticsResponse:
    ensure_permission(current_user, permissions.METRICS_READ)
    return await metrics_service.revenue_analytics(db, months=resolve_months(months, default=12))


@router.get("/occupancy", response_model=OccupancyAnalyticsResponse, summary="Occupancy analytics")
async def get_occupancy_analytics(
    months: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> OccupancyAnalyticsResponse:
    ensure_permission(current_user, permissions.METRICS_READ)
    return await metrics_service.occupancy_analytics(db, months=resolve_months(months, default=12))


# Registered last so the fixed paths above take precedence
@router.get("/{month}", response_model=SnapshotResponse, summary="Get one month's snapshot")
async def get_metric(
    month: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> SnapshotResponse:
    ensure_permission(current_user, permissions.METRICS_READ)
    snapshot = await metrics_service.get_snapshot(db, month)
    return SnapshotResponse.model_validate(snapshot)
