"""Pydantic v2 request/response schemas for unit endpoints."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

SIZE_PATTERN = "^(5m²|10m²|15m²|20m²|30m²)$"

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class UnitCreate(BaseModel):
    """Schema for creating a new (free) unit."""

    id: str = Field(..., min_length=1, max_length=10)
    size: str = Field(..., pattern=SIZE_PATTERN)
    price_per_month: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    floor: int | None = Field(1, ge=0)
    notes: str | None = None


class UnitUpdate(BaseModel):
    """Schema for partially updating a unit. Rental fields are not editable here."""

    size: str | None = Field(None, pattern=SIZE_PATTERN)
    price_per_month: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    floor: int | None = Field(None, ge=0)
    notes: str | None = None


class UnitRentRequest(BaseModel):
    """Schema for renting a unit to a customer."""

    customer_id: str = Field(..., min_length=1, max_length=10)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class UnitCustomerSummary(BaseModel):
    """Minimal customer details embedded in unit responses."""

    id: str
    name: str
    type: str

    model_config = ConfigDict(from_attributes=True)


class UnitResponse(BaseModel):
    """Public unit information returned from the API."""

    id: str
    size: str
    price_per_month: Decimal
    is_occupied: bool
    customer_id: str | None = None
    rented_since: date | None = None
    floor: int | None = None
    notes: str | None = None
    customer: UnitCustomerSummary | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UnitListResponse(BaseModel):
    """Paginated list of units."""

    items: list[UnitResponse]
    total: int
    page: int
    limit: int
    pages: int


class UnitSizeStats(BaseModel):
    size: str
    total: int
    occupied: int
    available: int
    occupancy_rate: Decimal


class UnitStatsResponse(BaseModel):
    """Live unit statistics across the whole facility."""

    total_units: int
    occupied_units: int
    available_units: int
    occupancy_rate: Decimal
    by_size: list[UnitSizeStats]
    avg_price_by_size: dict[str, Decimal]
    total_potential_revenue: Decimal
    current_monthly_revenue: Decimal
    revenue_utilization: Decimal
