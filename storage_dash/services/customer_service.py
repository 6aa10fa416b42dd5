"""Customer service: id generation and customer-base statistics."""

import logging
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storage_dash import timeutils
from storage_dash.errors import NotFoundError
from storage_dash.models.customer import Customer
from storage_dash.schemas.customer import CustomerStatsResponse
from storage_dash.services.metrics_service import count_customers, percentage

logger = logging.getLogger(__name__)

CUSTOMER_ID_PREFIX = "C"


def format_customer_id(number: int) -> str:
    """``1`` -> ``C001``; numbers past 999 simply grow wider."""
    return f"{CUSTOMER_ID_PREFIX}{number:03d}"


async def next_customer_id(db: AsyncSession) -> str:
    """Return the id following the highest numeric ``C###`` id in use."""
    result = await db.execute(select(Customer.id).where(Customer.id.like(f"{CUSTOMER_ID_PREFIX}%")))
    highest = 0
    for customer_id in result.scalars().all():
        suffix = customer_id[len(CUSTOMER_ID_PREFIX) :]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return format_customer_id(highest + 1)


async def get_customer_or_404(db: AsyncSession, customer_id: str) -> Customer:
    result = await db.execute(select(Customer).where(Customer.id == customer_id))
    customer = result.scalar_one_or_none()
    if customer is None:
        raise NotFoundError("Customer")
    return customer


async def customer_statistics(db: AsyncSession, today: date | None = None) -> CustomerStatsResponse:
    """Totals, type split, and this month's new / churned counts as of ``today``."""
    today = today or timeutils.utc_today()
    first_of_month = today.replace(day=1)

    total, active = await count_customers(db, today)

    type_result = await db.execute(select(Customer.type, func.count(Customer.id)).group_by(Customer.type))
    by_type = {customer_type: count for customer_type, count in type_result.all()}

    new_this_month = (
        await db.execute(select(func.count()).select_from(Customer).where(Customer.start_date >= first_of_month))
    ).scalar_one()
    churned_this_month = (
        await db.execute(
            select(func.count()).select_from(Customer).where(Customer.end_date.between(first_of_month, today))
        )
    ).scalar_one()

    return CustomerStatsResponse(
        total_customers=total,
        active_customers=active,
        inactive_customers=total - active,
        by_type=by_type,
        new_this_month=new_this_month,
        churned_this_month=churned_this_month,
        churn_rate=percentage(churned_this_month, active),
    )
