"""Seed the database with a demo self-storage facility.

Creates three users (admin / manager / staff), a mix of private and business
customers, units in every size category with a realistic occupancy, eleven
months of historical snapshots, and a freshly computed current month.

Run from the project root:
    python -m scripts.seed_data            # skip if data exists
    python -m scripts.seed_data --force    # wipe and re-seed
"""

import argparse
import asyncio
import math
import random
import sys
from datetime import date, datetime, timedelta
from decimal import Decimal
from pathlib import Path

# Add the project root to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storage_dash import timeutils
from storage_dash.config import Settings
from storage_dash.database import Database
from storage_dash.models.customer import Customer
from storage_dash.models.snapshot import MonthlySnapshot
from storage_dash.models.unit import UNIT_SIZES, Unit
from storage_dash.models.user import User
from storage_dash.services.customer_service import format_customer_id
from storage_dash.services.metrics_service import compute_current_snapshot, month_key, percentage, quantize
from storage_dash.services.user_service import create_user

# ---------------------------------------------------------------------------
# Seed data definitions
# ---------------------------------------------------------------------------

DEMO_USERS = [
    {"username": "admin", "email": "admin@selfstorage.com", "password": "admin1234", "role": "admin"},
    {"username": "manager", "email": "manager@selfstorage.com", "password": "manager1234", "role": "manager"},
    {"username": "staff", "email": "staff@selfstorage.com", "password": "staff1234", "role": "staff"},
]

# size -> (unit count, monthly price, id prefix)
UNIT_PLAN: dict[str, tuple[int, Decimal, str]] = {
    "5m²": (20, Decimal("49.00"), "A"),
    "10m²": (18, Decimal("89.00"), "B"),
    "15m²": (14, Decimal("119.00"), "C"),
    "20m²": (10, Decimal("149.00"), "D"),
    "30m²": (8, Decimal("209.00"), "E"),
}

BUSINESS_NAMES = [
    "Nordlicht Logistik GmbH",
    "Kaffeerösterei Weber",
    "Atelier Brandt",
    "Spree Events UG",
    "Hofmann Umzüge",
    "Grünwerk Gartenbau",
]

PRIVATE_NAMES = [
    "Anna Schmidt", "Lukas Müller", "Sophie Wagner", "Jonas Becker", "Marie Hoffmann",
    "Felix Schulz", "Laura Koch", "Paul Richter", "Lea Klein", "Tim Wolf",
    "Emma Neumann", "Ben Schwarz", "Mia Zimmermann", "Noah Braun", "Hannah Krüger",
    "Elias Hartmann", "Lina Lange", "Finn Werner", "Clara Krause", "Leon Meier",
    "Ida Lehmann", "Max Köhler", "Nele Herrmann", "Luis König", "Greta Walter",
    "Jakob Mayer", "Frieda Huber", "Anton Kaiser", "Ella Fuchs", "Theo Peters",
    "Maja Lang", "Henry Scholz", "Emilia Möller", "Oskar Weiß", "Paula Jung",
    "Karl Hahn", "Luisa Vogel", "Emil Friedrich", "Johanna Keller", "Moritz Günther",
]

OCCUPANCY_TARGET = 0.78


def _months_back(today: date, count: int) -> list[date]:
    """First-of-month dates for the ``count`` months before ``today``'s month, oldest first."""
    months = []
    year, month = today.year, today.month
    for _ in range(count):
        month -= 1
        if month == 0:
            year, month = year - 1, 12
        months.append(date(year, month, 1))
    return list(reversed(months))


def _build_customers(rng: random.Random, today: date) -> list[Customer]:
    customers = []
    names = [(name, "private") for name in PRIVATE_NAMES] + [(name, "business") for name in BUSINESS_NAMES]
    rng.shuffle(names)

    for index, (name, customer_type) in enumerate(names, start=1):
        start = today - timedelta(days=rng.randint(0, 720))
        # Roughly one in six customers has already left
        end = None
        if rng.random() < 0.17:
            end = min(today, start + timedelta(days=rng.randint(30, 400)))
        slug = name.lower().replace(" ", ".")
        customers.append(
            Customer(
                id=format_customer_id(index),
                name=name,
                type=customer_type,
                company_name=name if customer_type == "business" else None,
                email=f"{format_customer_id(index).lower()}@example.com",
                phone=f"+49 30 {rng.randint(1000000, 9999999)}",
                start_date=start,
                end_date=end,
                notes=f"Seeded customer ({slug})",
            )
        )
    return customers


def _build_units(rng: random.Random, customers: list[Customer], today: date) -> list[Unit]:
    active = [c for c in customers if c.is_active(today)]
    units = []
    for size in UNIT_SIZES:
        count, price, prefix = UNIT_PLAN[size]
        for number in range(1, count + 1):
            unit = Unit(
                id=f"{prefix}{number:03d}",
                size=size,
                price_per_month=price,
                is_occupied=False,
                floor=rng.randint(0, 2),
            )
            if active and rng.random() < OCCUPANCY_TARGET:
                customer = rng.choice(active)
                unit.is_occupied = True
                unit.customer = customer
                unit.rented_since = max(customer.start_date, today - timedelta(days=rng.randint(0, 540)))
            units.append(unit)
    return units


def _historical_snapshots(rng: random.Random, today: date, months: int = 11) -> list[MonthlySnapshot]:
    """Synthetic history with gentle growth and a seasonal swing."""
    total_units = sum(count for count, _, _ in UNIT_PLAN.values())
    snapshots = []

    for index, first_day in enumerate(_months_back(today, months)):
        growth = 1 + index * 0.015
        seasonal = 1 + math.sin(first_day.month / 12 * 2 * math.pi) * 0.05
        rate = min(0.95, 0.68 * growth * seasonal)

        revenue_by_size = {}
        occupancy_by_size = {}
        occupied_total = 0
        for size in UNIT_SIZES:
            count, price, _ = UNIT_PLAN[size]
            occupied = min(count, round(count * rate))
            occupied_total += occupied
            if occupied:
                revenue_by_size[size] = float(price * occupied)
            occupancy_by_size[size] = {
                "total": count,
                "occupied": occupied,
                "rate": float(percentage(occupied, count)),
            }

        snapshots.append(
            MonthlySnapshot(
                month=month_key(first_day),
                total_revenue=quantize(sum(revenue_by_size.values())),
                occupancy_rate=percentage(occupied_total, total_units),
                total_units=total_units,
                occupied_units=occupied_total,
                new_customers=rng.randint(2, 8),
                churned_customers=rng.randint(0, 4),
                average_rental_duration=quantize(8 + rng.random() * 4),
                revenue_by_size=revenue_by_size,
                occupancy_by_size=occupancy_by_size,
            )
        )
    return snapshots


async def seed(session: AsyncSession, now: datetime | None = None, force: bool = False, rng_seed: int = 42) -> dict:
    """Populate ``session`` with demo data. Returns a summary of what was created.

    Does nothing when users or units already exist, unless ``force`` is set,
    in which case existing rows are deleted first.
    """
    now = now or timeutils.utc_now()
    today = now.date()
    rng = random.Random(rng_seed)

    existing_users = (await session.execute(select(func.count()).select_from(User))).scalar_one()
    existing_units = (await session.execute(select(func.count()).select_from(Unit))).scalar_one()

    if (existing_users or existing_units) and not force:
        print(f"⚠️  Database already contains data ({existing_users} users, {existing_units} units). Skipping seed.")
        return {"seeded": False}

    if force:
        print("⚠️  Force seeding: clearing existing data...")
        # Units reference customers, so they go first
        for model in (MonthlySnapshot, Unit, Customer, User):
            await session.execute(delete(model))
        await session.flush()

    for account in DEMO_USERS:
        await create_user(session, **account)

    customers = _build_customers(rng, today)
    session.add_all(customers)
    await session.flush()

    units = _build_units(rng, customers, today)
    session.add_all(units)
    await session.flush()

    history = _historical_snapshots(rng, today)
    session.add_all(history)
    await session.flush()

    snapshot, _ = await compute_current_snapshot(session, now)

    summary = {
        "seeded": True,
        "users": len(DEMO_USERS),
        "customers": len(customers),
        "units": len(units),
        "snapshots": len(history) + 1,
        "current_month": snapshot.month,
    }
    print(f"✅ Seeded {summary}")
    return summary


async def main(force: bool = False) -> None:
    database = Database(Settings())
    try:
        await database.create_all()
        async with database.session() as session:
            await seed(session, force=force)
    finally:
        await database.dispose()

    print("\nDemo accounts:")
    for account in DEMO_USERS:
        print(f"  {account['role']:<8} {account['email']} / {account['password']}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--force", action="store_true", help="delete existing data before seeding")
    asyncio.run(main(force=parser.parse_args().force))
