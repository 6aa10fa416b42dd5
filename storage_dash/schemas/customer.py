"""Pydantic v2 request/response schemas for customer endpoints."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

TYPE_PATTERN = "^(private|business)$"

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CustomerCreate(BaseModel):
    """Schema for creating a new customer. The id is generated server-side."""

    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    type: str = Field(..., pattern=TYPE_PATTERN)
    company_name: str | None = Field(None, max_length=255)
    address: str | None = None
    start_date: date | None = None
    notes: str | None = None


class CustomerUpdate(BaseModel):
    """Schema for partially updating a customer. All fields optional."""

    name: str | None = Field(None, min_length=2, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    type: str | None = Field(None, pattern=TYPE_PATTERN)
    company_name: str | None = Field(None, max_length=255)
    address: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def _check_dates(self) -> "CustomerUpdate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class CustomerUnitSummary(BaseModel):
    """Unit details embedded in customer responses."""

    id: str
    size: str
    price_per_month: Decimal
    is_occupied: bool
    rented_since: date | None = None

    model_config = ConfigDict(from_attributes=True)


class CustomerResponse(BaseModel):
    """Public customer information returned from the API."""

    id: str
    name: str
    email: str | None = None
    phone: str | None = None
    type: str
    company_name: str | None = None
    address: str | None = None
    start_date: date
    end_date: date | None = None
    notes: str | None = None
    units: list[CustomerUnitSummary] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CustomerListResponse(BaseModel):
    """Paginated list of customers."""

    items: list[CustomerResponse]
    total: int
    page: int
    limit: int
    pages: int


class CustomerStatsResponse(BaseModel):
    """Customer base statistics for the current month."""

    total_customers: int
    active_customers: int
    inactive_customers: int
    by_type: dict[str, int]
    new_this_month: int
    churned_this_month: int
    churn_rate: Decimal
