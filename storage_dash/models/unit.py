"""Unit model: rentable storage compartments."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storage_dash.database import Base, TimestampMixin

UNIT_SIZES: tuple[str, ...] = ("5m²", "10m²", "15m²", "20m²", "30m²")


class Unit(TimestampMixin, Base):
    """A storage unit of a fixed size category, optionally rented to a customer."""

    __tablename__ = "units"

    id: Mapped[str] = mapped_column(String(10), primary_key=True)
    size: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    price_per_month: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    is_occupied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    customer_id: Mapped[str | None] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    rented_since: Mapped[date | None] = mapped_column(Date, nullable=True)
    floor: Mapped[int | None] = mapped_column(Integer, default=1)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    customer: Mapped["Customer | None"] = relationship(back_populates="units", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (
        CheckConstraint("price_per_month >= 0", name="ck_units_price_non_negative"),
        CheckConstraint(
            "(customer_id IS NULL AND rented_since IS NULL) OR (customer_id IS NOT NULL AND rented_since IS NOT NULL)",
            name="ck_units_rental_pair",
        ),
    )

    def __repr__(self) -> str:
        return f"<Unit(id={self.id!r}, size={self.size!r}, occupied={self.is_occupied})>"
