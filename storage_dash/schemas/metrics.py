"""Pydantic v2 schemas for monthly snapshots, dashboard and report endpoints."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class SizeOccupancy(BaseModel):
    """Occupancy of one size category inside a snapshot."""

    total: int
    occupied: int
    rate: Decimal  # percentage 0.00–100.00


class SnapshotResponse(BaseModel):
    """A stored monthly snapshot."""

    id: uuid.UUID
    month: str
    total_revenue: Decimal
    occupancy_rate: Decimal
    total_units: int
    occupied_units: int
    new_customers: int
    churned_customers: int
    average_rental_duration: Decimal
    revenue_by_size: dict[str, Decimal]
    occupancy_by_size: dict[str, SizeOccupancy]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SnapshotListResponse(BaseModel):
    snapshots: list[SnapshotResponse]


class CalculateResponse(BaseModel):
    """Result of ``POST /metrics/calculate``."""

    snapshot: SnapshotResponse
    created: bool
    message: str


class DashboardOverview(BaseModel):
    total_units: int
    occupied_units: int
    available_units: int
    occupancy_rate: Decimal
    total_customers: int
    active_customers: int
    current_revenue: Decimal
    potential_revenue: Decimal
    revenue_utilization: Decimal


class DashboardTrends(BaseModel):
    """Month-over-month percentage changes between the two latest snapshots."""

    revenue_change: Decimal
    occupancy_change: Decimal


class DashboardResponse(BaseModel):
    overview: DashboardOverview
    trends: DashboardTrends
    historical_metrics: list[SnapshotResponse]  # oldest first


class RevenueTrendPoint(BaseModel):
    month: str
    total_revenue: Decimal
    revenue_by_size: dict[str, Decimal]


class SizeRevenue(BaseModel):
    size: str
    revenue: Decimal
    units: int


class RevenueAnalyticsResponse(BaseModel):
    current_revenue: Decimal
    potential_revenue: Decimal
    lost_revenue: Decimal
    revenue_by_size: list[SizeRevenue]
    monthly_trend: list[RevenueTrendPoint]  # oldest first


class OccupancyTrendPoint(BaseModel):
    month: str
    occupancy_rate: Decimal
    total_units: int
    occupied_units: int
    occupancy_by_size: dict[str, SizeOccupancy]


class SizeOccupancyDetail(BaseModel):
    size: str
    total: int
    occupied: int
    available: int
    rate: Decimal


class OccupancyAnalyticsResponse(BaseModel):
    current_occupancy: list[SizeOccupancyDetail]
    monthly_trend: list[OccupancyTrendPoint]  # oldest first
