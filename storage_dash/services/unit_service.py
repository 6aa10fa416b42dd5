"""Unit service: rentals, releases, and live unit statistics."""

import logging
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storage_dash import timeutils
from storage_dash.errors import ConflictError, NotFoundError
from storage_dash.models.customer import Customer
from storage_dash.models.unit import Unit
from storage_dash.schemas.unit import UnitSizeStats, UnitStatsResponse
from storage_dash.services.metrics_service import percentage, quantize, unit_totals

logger = logging.getLogger(__name__)


async def get_unit_or_404(db: AsyncSession, unit_id: str) -> Unit:
    result = await db.execute(select(Unit).where(Unit.id == unit_id))
    unit = result.scalar_one_or_none()
    if unit is None:
        raise NotFoundError("Unit")
    return unit


async def rent_unit(db: AsyncSession, unit: Unit, customer_id: str, today: date | None = None) -> Unit:
    """Assign a free unit to an active customer, starting the rental today."""
    today = today or timeutils.utc_today()

    if unit.is_occupied:
        raise ConflictError("Unit is already occupied")

    customer = await db.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer")
    if not customer.is_active(today):
        raise ConflictError("Customer is no longer active")

    unit.is_occupied = True
    unit.customer = customer
    unit.rented_since = today
    db.add(unit)
    await db.flush()
    await db.refresh(unit)

    logger.info("Unit %s rented to customer %s", unit.id, customer.id)
    return unit


async def release_unit(db: AsyncSession, unit: Unit) -> Unit:
    """Return an occupied unit to the free pool."""
    if not unit.is_occupied:
        raise ConflictError("Unit is not occupied")

    previous_customer = unit.customer_id
    unit.is_occupied = False
    unit.customer = None
    unit.rented_since = None
    db.add(unit)
    await db.flush()
    await db.refresh(unit)

    logger.info("Unit %s released by customer %s", unit.id, previous_customer)
    return unit


async def unit_statistics(db: AsyncSession) -> UnitStatsResponse:
    totals = await unit_totals(db)

    avg_result = await db.execute(select(Unit.size, func.avg(Unit.price_per_month)).group_by(Unit.size))
    avg_price_by_size = {size: quantize(avg) for size, avg in avg_result.all()}

    return UnitStatsResponse(
        total_units=totals.total_units,
        occupied_units=totals.occupied_units,
        available_units=totals.total_units - totals.occupied_units,
        occupancy_rate=totals.occupancy_rate,
        by_size=[
            UnitSizeStats(
                size=row.size,
                total=row.total,
                occupied=row.occupied,
                available=row.available,
                occupancy_rate=row.rate,
            )
            for row in totals.by_size
        ],
        avg_price_by_size=avg_price_by_size,
        total_potential_revenue=totals.potential_revenue,
        current_monthly_revenue=totals.current_revenue,
        revenue_utilization=percentage(totals.current_revenue, totals.potential_revenue),
    )
