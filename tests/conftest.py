"""Shared test configuration and fixtures.

Every test gets a fresh application built by ``create_app`` on an in-memory
SQLite database, so no external database server is needed and nothing leaks
between tests.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from storage_dash.auth.jwt import create_token_pair
from storage_dash.config import Settings
from storage_dash.database import get_db
from storage_dash.main import create_app
from storage_dash.models.customer import Customer
from storage_dash.models.unit import Unit
from storage_dash.models.user import User
from storage_dash.services.user_service import create_user


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key="test-secret-key-not-for-production",
        log_level="WARNING",
    )


# ---------------------------------------------------------------------------
# Per-test: application, schema, and a shared session
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def app(test_settings: Settings) -> AsyncGenerator[FastAPI, None]:
    application = create_app(test_settings)
    database = application.state.database
    await database.create_all()
    yield application
    await database.dispose()


@pytest_asyncio.fixture
async def db_session(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    """Yield the session every request in the test shares."""
    async with app.state.database.session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(app: FastAPI, db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to use the test DB session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience fixtures: users per role
# ---------------------------------------------------------------------------


async def _make_user(db_session: AsyncSession, role: str) -> User:
    unique = uuid.uuid4().hex[:8]
    return await create_user(
        db_session,
        username=f"{role}-{unique}",
        email=f"{role}-{unique}@test.com",
        password="testpass123",
        role=role,
    )


def _headers(user: User, settings: Settings) -> dict[str, str]:
    tokens = create_token_pair(str(user.id), settings, role=user.role)
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "admin")


@pytest_asyncio.fixture
async def manager_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "manager")


@pytest_asyncio.fixture
async def staff_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "staff")


@pytest.fixture
def admin_headers(admin_user: User, test_settings: Settings) -> dict[str, str]:
    return _headers(admin_user, test_settings)


@pytest.fixture
def manager_headers(manager_user: User, test_settings: Settings) -> dict[str, str]:
    return _headers(manager_user, test_settings)


@pytest.fixture
def staff_headers(staff_user: User, test_settings: Settings) -> dict[str, str]:
    return _headers(staff_user, test_settings)


# ---------------------------------------------------------------------------
# Data helpers for inserting units and customers directly
# ---------------------------------------------------------------------------


@pytest.fixture
def add_customer(db_session: AsyncSession):
    """Factory inserting a customer row; returns the flushed ``Customer``."""
    counter = {"n": 0}

    async def _add(
        start_date: date,
        end_date: date | None = None,
        customer_type: str = "private",
        name: str | None = None,
    ) -> Customer:
        counter["n"] += 1
        customer = Customer(
            id=f"T{counter['n']:03d}",
            name=name or f"Customer {counter['n']}",
            type=customer_type,
            start_date=start_date,
            end_date=end_date,
        )
        db_session.add(customer)
        await db_session.flush()
        await db_session.refresh(customer)
        return customer

    return _add


@pytest.fixture
def add_unit(db_session: AsyncSession):
    """Factory inserting a unit row, optionally already rented."""
    counter = {"n": 0}

    async def _add(
        size: str = "5m²",
        price: str | Decimal = "50.00",
        customer: Customer | None = None,
        rented_since: date | None = None,
    ) -> Unit:
        counter["n"] += 1
        unit = Unit(
            id=f"U{counter['n']:03d}",
            size=size,
            price_per_month=Decimal(str(price)),
            is_occupied=customer is not None,
            customer=customer,
            rented_since=(rented_since or customer.start_date) if customer is not None else None,
        )
        db_session.add(unit)
        await db_session.flush()
        await db_session.refresh(unit)
        return unit

    return _add
