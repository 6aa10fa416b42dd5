"""Customer model: private and business tenants."""

from datetime import date

from sqlalchemy import CheckConstraint, Date, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storage_dash import timeutils
from storage_dash.database import Base, TimestampMixin

CUSTOMER_TYPES: tuple[str, ...] = ("private", "business")


class Customer(TimestampMixin, Base):
    """A tenant renting one or more units. ``end_date`` is null while active."""

    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(10), primary_key=True)  # C001, C002, ...
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)  # private, business
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    units: Mapped[list["Unit"]] = relationship(back_populates="customer", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (CheckConstraint("end_date IS NULL OR end_date >= start_date", name="ck_customers_dates"),)

    def is_active(self, today: date | None = None) -> bool:
        today = today or timeutils.utc_today()
        return self.end_date is None or self.end_date >= today

    def __repr__(self) -> str:
        return f"<Customer(id={self.id!r}, name={self.name!r}, type={self.type!r})>"
