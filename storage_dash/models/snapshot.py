"""MonthlySnapshot model: one persisted aggregate per calendar month."""

from decimal import Decimal

from sqlalchemy import JSON, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from storage_dash.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class MonthlySnapshot(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Occupancy, revenue, and churn figures for one ``YYYY-MM`` month."""

    __tablename__ = "monthly_snapshots"

    month: Mapped[str] = mapped_column(String(7), unique=True, nullable=False, index=True)
    total_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    occupancy_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    total_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    occupied_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new_customers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    churned_customers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_rental_duration: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=Decimal("0"))
    revenue_by_size: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)  # {size: revenue}
    occupancy_by_size: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)  # {size: {total, occupied, rate}}

    def __repr__(self) -> str:
        return f"<MonthlySnapshot(month={self.month!r}, revenue={self.total_revenue}, occupancy={self.occupancy_rate})>"
