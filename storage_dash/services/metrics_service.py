"""Monthly metrics aggregation, dashboard summary, and revenue/occupancy reports.

The aggregator reads live unit and customer state, derives the figures for the
current calendar month, and upserts them as a single ``MonthlySnapshot`` row.
Every per-size and facility-wide unit figure comes from one grouped query, so
the totals and the breakdowns always describe the same read.
"""

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import case, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storage_dash import timeutils
from storage_dash.errors import AggregationFailure, NotFoundError, ValidationError
from storage_dash.models.customer import Customer
from storage_dash.models.snapshot import MonthlySnapshot
from storage_dash.models.unit import UNIT_SIZES, Unit
from storage_dash.schemas.metrics import (
    DashboardOverview,
    DashboardResponse,
    DashboardTrends,
    OccupancyAnalyticsResponse,
    OccupancyTrendPoint,
    RevenueAnalyticsResponse,
    RevenueTrendPoint,
    SizeOccupancyDetail,
    SizeRevenue,
    SnapshotResponse,
)

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")
DAYS_PER_MONTH = 30

_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def quantize(value: Decimal | int | float | None) -> Decimal:
    """Round to two decimal places, treating ``None`` as zero."""
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def percentage(part: Decimal | int, whole: Decimal | int) -> Decimal:
    """Return ``part / whole * 100`` rounded to 2 dp, or 0 when ``whole`` is 0."""
    if not whole:
        return ZERO
    return quantize(Decimal(part) * 100 / Decimal(whole))


def percent_change(current: Decimal | int, previous: Decimal | int) -> Decimal:
    """Relative change from ``previous`` to ``current`` in percent; 0 when ``previous`` is 0."""
    if not previous:
        return ZERO
    return quantize((Decimal(current) - Decimal(previous)) * 100 / Decimal(previous))


def month_key(moment: datetime | date) -> str:
    """Return the ``YYYY-MM`` key for the month containing ``moment``."""
    return f"{moment.year:04d}-{moment.month:02d}"


def month_bounds(moment: datetime | date) -> tuple[date, date]:
    """Return the first and last calendar day of the month containing ``moment``."""
    last_day = calendar.monthrange(moment.year, moment.month)[1]
    return date(moment.year, moment.month, 1), date(moment.year, moment.month, last_day)


def validate_month(value: str) -> str:
    """Return ``value`` unchanged if it is a ``YYYY-MM`` key, else raise ``ValidationError``."""
    if not _MONTH_RE.match(value):
        raise ValidationError(f"Invalid month {value!r}; expected YYYY-MM")
    return value


def average_rental_months(rented_since: list[date], today: date) -> Decimal:
    """Mean rental age in 30-day months over the given start dates, 0 if empty."""
    if not rented_since:
        return ZERO
    total_days = sum((today - start).days for start in rented_since)
    return quantize(Decimal(total_days) / Decimal(len(rented_since)) / DAYS_PER_MONTH)


def month_over_month(snapshots: list[MonthlySnapshot]) -> tuple[Decimal, Decimal]:
    """Return (revenue_change, occupancy_change) from month-descending snapshots.

    Both are 0 when fewer than two snapshots exist.
    """
    if len(snapshots) < 2:
        return ZERO, ZERO
    current, previous = snapshots[0], snapshots[1]
    return (
        percent_change(current.total_revenue, previous.total_revenue),
        percent_change(current.occupancy_rate, previous.occupancy_rate),
    )


def _size_order(size: str) -> int:
    return UNIT_SIZES.index(size) if size in UNIT_SIZES else len(UNIT_SIZES)


# ---------------------------------------------------------------------------
# Live aggregates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SizeBreakdown:
    """Unit counts and occupied revenue for one size category."""

    size: str
    total: int
    occupied: int
    revenue: Decimal
    potential_revenue: Decimal

    @property
    def available(self) -> int:
        return self.total - self.occupied

    @property
    def rate(self) -> Decimal:
        return percentage(self.occupied, self.total)


@dataclass(frozen=True)
class UnitTotals:
    """Facility-wide unit figures derived from the per-size breakdown."""

    by_size: list[SizeBreakdown]

    @property
    def total_units(self) -> int:
        return sum(row.total for row in self.by_size)

    @property
    def occupied_units(self) -> int:
        return sum(row.occupied for row in self.by_size)

    @property
    def occupancy_rate(self) -> Decimal:
        return percentage(self.occupied_units, self.total_units)

    @property
    def current_revenue(self) -> Decimal:
        return quantize(sum((row.revenue for row in self.by_size), ZERO))

    @property
    def potential_revenue(self) -> Decimal:
        return quantize(sum((row.potential_revenue for row in self.by_size), ZERO))


async def unit_totals(db: AsyncSession) -> UnitTotals:
    """Group all units by size in a single query."""
    occupied = Unit.is_occupied.is_(True)
    query = select(
        Unit.size,
        func.count(Unit.id),
        func.sum(case((occupied, 1), else_=0)),
        func.sum(case((occupied, Unit.price_per_month), else_=0)),
        func.sum(Unit.price_per_month),
    ).group_by(Unit.size)

    result = await db.execute(query)
    rows = [
        SizeBreakdown(
            size=size,
            total=int(total or 0),
            occupied=int(occupied_count or 0),
            revenue=quantize(revenue),
            potential_revenue=quantize(potential),
        )
        for size, total, occupied_count, revenue, potential in result.all()
    ]
    rows.sort(key=lambda row: _size_order(row.size))
    return UnitTotals(by_size=rows)


async def count_customers(db: AsyncSession, today: date) -> tuple[int, int]:
    """Return (total_customers, active_customers) as of ``today``."""
    total = (await db.execute(select(func.count()).select_from(Customer))).scalar_one()
    active = (
        await db.execute(
            select(func.count())
            .select_from(Customer)
            .where(or_(Customer.end_date.is_(None), Customer.end_date >= today))
        )
    ).scalar_one()
    return total, active


async def _count_customers_in_window(db: AsyncSession, column, first_day: date, last_day: date) -> int:
    result = await db.execute(select(func.count()).select_from(Customer).where(column.between(first_day, last_day)))
    return result.scalar_one()


async def _active_rental_starts(db: AsyncSession) -> list[date]:
    result = await db.execute(
        select(Unit.rented_since).where(Unit.is_occupied.is_(True), Unit.rented_since.is_not(None))
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


async def calculate_snapshot_values(db: AsyncSession, now: datetime) -> dict:
    """Compute every snapshot field for the month containing ``now`` without writing.

    ``revenue_by_size`` only lists sizes with at least one occupied unit;
    ``occupancy_by_size`` lists every size that has units.
    """
    first_day, last_day = month_bounds(now)
    totals = await unit_totals(db)

    new_customers = await _count_customers_in_window(db, Customer.start_date, first_day, last_day)
    churned_customers = await _count_customers_in_window(db, Customer.end_date, first_day, last_day)
    rental_starts = await _active_rental_starts(db)

    return {
        "month": month_key(now),
        "total_revenue": totals.current_revenue,
        "occupancy_rate": totals.occupancy_rate,
        "total_units": totals.total_units,
        "occupied_units": totals.occupied_units,
        "new_customers": new_customers,
        "churned_customers": churned_customers,
        "average_rental_duration": average_rental_months(rental_starts, now.date()),
        # JSON columns hold floats; Decimal is not JSON serialisable
        "revenue_by_size": {row.size: float(row.revenue) for row in totals.by_size if row.occupied > 0},
        "occupancy_by_size": {
            row.size: {"total": row.total, "occupied": row.occupied, "rate": float(row.rate)}
            for row in totals.by_size
            if row.total > 0
        },
    }


def _upsert_statement(dialect_name: str, values: dict):
    insert = _UPSERT_INSERTS.get(dialect_name)
    if insert is None:
        raise AggregationFailure(f"Snapshot upsert is not supported on the {dialect_name} dialect")

    stmt = insert(MonthlySnapshot).values(**values)
    updates = {key: stmt.excluded[key] for key in values if key != "month"}
    updates["updated_at"] = func.now()
    return stmt.on_conflict_do_update(index_elements=[MonthlySnapshot.month], set_=updates)


async def compute_current_snapshot(
    db: AsyncSession,
    now: datetime | None = None,
) -> tuple[MonthlySnapshot, bool]:
    """Compute the current month's snapshot and upsert it by month key.

    All reads complete before the single ``INSERT ... ON CONFLICT DO UPDATE``,
    so a failure leaves any earlier snapshot for the month untouched.

    Returns:
        The stored snapshot and ``True`` if it was newly created, ``False``
        if an existing row for the month was overwritten.

    Raises:
        AggregationFailure: If the store fails while reading or writing.
    """
    now = now or timeutils.utc_now()
    month = month_key(now)

    try:
        values = await calculate_snapshot_values(db, now)

        existing = await db.execute(select(MonthlySnapshot.id).where(MonthlySnapshot.month == month))
        created = existing.scalar_one_or_none() is None

        await db.execute(_upsert_statement(db.bind.dialect.name, values))

        result = await db.execute(
            select(MonthlySnapshot)
            .where(MonthlySnapshot.month == month)
            .execution_options(populate_existing=True)
        )
        snapshot = result.scalar_one()
    except SQLAlchemyError as exc:
        logger.exception("Metrics aggregation for %s failed", month)
        raise AggregationFailure(f"Could not compute metrics for {month}") from exc

    logger.info(
        "%s snapshot %s: revenue=%s occupancy=%s%% units=%d/%d",
        "Created" if created else "Updated",
        month,
        snapshot.total_revenue,
        snapshot.occupancy_rate,
        snapshot.occupied_units,
        snapshot.total_units,
    )
    return snapshot, created


# ---------------------------------------------------------------------------
# Snapshot reads
# ---------------------------------------------------------------------------


async def list_snapshots(
    db: AsyncSession,
    start_month: str | None = None,
    end_month: str | None = None,
    limit: int = 12,
) -> list[MonthlySnapshot]:
    """Return snapshots in the inclusive month range, most recent first."""
    query = select(MonthlySnapshot)
    if start_month is not None:
        query = query.where(MonthlySnapshot.month >= validate_month(start_month))
    if end_month is not None:
        query = query.where(MonthlySnapshot.month <= validate_month(end_month))
    if start_month is not None and end_month is not None and start_month > end_month:
        raise ValidationError("start_month must not be after end_month")

    result = await db.execute(query.order_by(MonthlySnapshot.month.desc()).limit(limit))
    return list(result.scalars().all())


async def get_snapshot(db: AsyncSession, month: str) -> MonthlySnapshot:
    result = await db.execute(select(MonthlySnapshot).where(MonthlySnapshot.month == validate_month(month)))
    snapshot = result.scalar_one_or_none()
    if snapshot is None:
        raise NotFoundError("Metric", f"No metrics stored for {month}")
    return snapshot


# ---------------------------------------------------------------------------
# Dashboard and reports
# ---------------------------------------------------------------------------


async def build_dashboard(
    db: AsyncSession,
    now: datetime | None = None,
    history: int = 12,
) -> DashboardResponse:
    """Combine the latest snapshots with live unit and customer figures."""
    now = now or timeutils.utc_now()

    snapshots = await list_snapshots(db, limit=history)
    totals = await unit_totals(db)
    total_customers, active_customers = await count_customers(db, now.date())

    revenue_change, occupancy_change = month_over_month(snapshots)

    return DashboardResponse(
        overview=DashboardOverview(
            total_units=totals.total_units,
            occupied_units=totals.occupied_units,
            available_units=totals.total_units - totals.occupied_units,
            occupancy_rate=totals.occupancy_rate,
            total_customers=total_customers,
            active_customers=active_customers,
            current_revenue=totals.current_revenue,
            potential_revenue=totals.potential_revenue,
            revenue_utilization=percentage(totals.current_revenue, totals.potential_revenue),
        ),
        trends=DashboardTrends(revenue_change=revenue_change, occupancy_change=occupancy_change),
        historical_metrics=[SnapshotResponse.model_validate(s) for s in reversed(snapshots)],
    )


async def revenue_analytics(db: AsyncSession, months: int = 12) -> RevenueAnalyticsResponse:
    """Live revenue split by size plus the stored monthly revenue trend."""
    snapshots = await list_snapshots(db, limit=months)
    totals = await unit_totals(db)

    return RevenueAnalyticsResponse(
        current_revenue=totals.current_revenue,
        potential_revenue=totals.potential_revenue,
        lost_revenue=totals.potential_revenue - totals.current_revenue,
        revenue_by_size=[
            SizeRevenue(size=row.size, revenue=row.revenue, units=row.occupied)
            for row in totals.by_size
            if row.occupied > 0
        ],
        monthly_trend=[
            RevenueTrendPoint(month=s.month, total_revenue=s.total_revenue, revenue_by_size=s.revenue_by_size)
            for s in reversed(snapshots)
        ],
    )


async def occupancy_analytics(db: AsyncSession, months: int = 12) -> OccupancyAnalyticsResponse:
    """Live occupancy split by size plus the stored monthly occupancy trend."""
    snapshots = await list_snapshots(db, limit=months)
    totals = await unit_totals(db)

    return OccupancyAnalyticsResponse(
        current_occupancy=[
            SizeOccupancyDetail(
                size=row.size,
                total=row.total,
                occupied=row.occupied,
                available=row.available,
                rate=row.rate,
            )
            for row in totals.by_size
        ],
        monthly_trend=[
            OccupancyTrendPoint(
                month=s.month,
                occupancy_rate=s.occupancy_rate,
                total_units=s.total_units,
                occupied_units=s.occupied_units,
                occupancy_by_size=s.occupancy_by_size,
            )
            for s in reversed(snapshots)
        ],
    )
