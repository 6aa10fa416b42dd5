"""Tests for the customers endpoints: CRUD, filters, and statistics."""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from storage_dash.models.customer import Customer
from storage_dash.services import customer_service
from storage_dash.timeutils import utc_today

pytestmark = pytest.mark.asyncio

CUSTOMERS = "/api/v1/customers"


async def _create_customer(client: AsyncClient, headers: dict, **overrides) -> dict:
    body = {"name": "Anna Schmidt", "email": "anna@test.com", "type": "private"}
    body.update(overrides)
    response = await client.post(CUSTOMERS, json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


# ---------------------------------------------------------------------------
# Create / read / update / delete
# ---------------------------------------------------------------------------


class TestCustomerCrud:
    async def test_create_assigns_sequential_ids(self, client: AsyncClient, manager_headers: dict):
        first = await _create_customer(client, manager_headers)
        second = await _create_customer(client, manager_headers, name="Lukas Müller", email="lukas@test.com")
        assert first["id"] == "C001"
        assert second["id"] == "C002"

    async def test_create_defaults_start_date_to_today(self, client: AsyncClient, manager_headers: dict):
        data = await _create_customer(client, manager_headers)
        assert data["start_date"] == utc_today().isoformat()
        assert data["end_date"] is None
        assert data["units"] == []

    async def test_private_customer_drops_company_name(self, client: AsyncClient, manager_headers: dict):
        data = await _create_customer(client, manager_headers, company_name="Should Vanish")
        assert data["company_name"] is None

    async def test_business_customer_keeps_company_name(self, client: AsyncClient, manager_headers: dict):
        data = await _create_customer(
            client, manager_headers, name="Atelier Brandt", type="business", company_name="Atelier Brandt GmbH"
        )
        assert data["type"] == "business"
        assert data["company_name"] == "Atelier Brandt GmbH"

    async def test_invalid_type_is_422(self, client: AsyncClient, manager_headers: dict):
        response = await client.post(CUSTOMERS, json={"name": "Nobody", "type": "vip"}, headers=manager_headers)
        assert response.status_code == 422

    async def test_get_customer_with_units(
        self, client: AsyncClient, staff_headers: dict, add_customer, add_unit
    ):
        customer = await add_customer(start_date=utc_today() - timedelta(days=40))
        await add_unit(size="10m²", price="89.00", customer=customer)

        response = await client.get(f"{CUSTOMERS}/{customer.id}", headers=staff_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == customer.name
        assert len(data["units"]) == 1
        assert data["units"][0]["size"] == "10m²"

    async def test_get_missing_customer_is_404(self, client: AsyncClient, staff_headers: dict):
        response = await client.get(f"{CUSTOMERS}/C999", headers=staff_headers)
        assert response.status_code == 404

    async def test_update_sets_end_date(self, client: AsyncClient, manager_headers: dict, add_customer):
        customer = await add_customer(start_date=utc_today() - timedelta(days=90))
        end = utc_today().isoformat()
        response = await client.put(f"{CUSTOMERS}/{customer.id}", json={"end_date": end}, headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["end_date"] == end

    async def test_update_end_before_start_is_400(self, client: AsyncClient, manager_headers: dict, add_customer):
        customer = await add_customer(start_date=utc_today() - timedelta(days=10))
        response = await client.put(
            f"{CUSTOMERS}/{customer.id}",
            json={"end_date": (utc_today() - timedelta(days=20)).isoformat()},
            headers=manager_headers,
        )
        assert response.status_code == 400

        unchanged = await client.get(f"{CUSTOMERS}/{customer.id}", headers=manager_headers)
        assert unchanged.json()["end_date"] is None

    async def test_update_both_dates_inverted_is_422(self, client: AsyncClient, manager_headers: dict, add_customer):
        customer = await add_customer(start_date=utc_today() - timedelta(days=10))
        response = await client.put(
            f"{CUSTOMERS}/{customer.id}",
            json={"start_date": "2024-05-01", "end_date": "2024-04-01"},
            headers=manager_headers,
        )
        assert response.status_code == 422

    async def test_delete_customer(self, client: AsyncClient, admin_headers: dict, add_customer):
        customer = await add_customer(start_date=utc_today())
        response = await client.delete(f"{CUSTOMERS}/{customer.id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Customer deleted"

    async def test_delete_customer_with_units_is_409(
        self, client: AsyncClient, admin_headers: dict, add_customer, add_unit
    ):
        customer = await add_customer(start_date=utc_today() - timedelta(days=5))
        await add_unit(customer=customer)
        response = await client.delete(f"{CUSTOMERS}/{customer.id}", headers=admin_headers)
        assert response.status_code == 409

    async def test_manager_cannot_delete(self, client: AsyncClient, manager_headers: dict, add_customer):
        customer = await add_customer(start_date=utc_today())
        response = await client.delete(f"{CUSTOMERS}/{customer.id}", headers=manager_headers)
        assert response.status_code == 403

    async def test_staff_cannot_create(self, client: AsyncClient, staff_headers: dict):
        response = await client.post(CUSTOMERS, json={"name": "Anna", "type": "private"}, headers=staff_headers)
        assert response.status_code == 403

    async def test_create_with_id_taken_concurrently_is_409(
        self, client: AsyncClient, manager_headers: dict, db_session: AsyncSession, monkeypatch
    ):
        # A concurrent request already inserted C001 after this one read the highest id
        await db_session.execute(
            insert(Customer).values(id="C001", name="Lukas Müller", type="private", start_date=utc_today())
        )

        async def stale_next_id(db):
            return "C001"

        monkeypatch.setattr(customer_service, "next_customer_id", stale_next_id)

        body = {"name": "Anna Schmidt", "type": "private"}
        response = await client.post(CUSTOMERS, json=body, headers=manager_headers)
        assert response.status_code == 409
        assert response.json()["detail"] == "Customer ID C001 was taken concurrently, retry the request"


# ---------------------------------------------------------------------------
# GET /customers: filters
# ---------------------------------------------------------------------------


class TestListCustomers:
    async def _seed(self, add_customer) -> None:
        today = utc_today()
        await add_customer(start_date=today - timedelta(days=200), name="Anna Schmidt")
        await add_customer(start_date=today - timedelta(days=100), name="Hofmann Umzüge", customer_type="business")
        await add_customer(
            start_date=today - timedelta(days=300), end_date=today - timedelta(days=50), name="Ben Schwarz"
        )

    async def test_list_all(self, client: AsyncClient, staff_headers: dict, add_customer):
        await self._seed(add_customer)
        response = await client.get(CUSTOMERS, headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 3

    async def test_filter_by_type(self, client: AsyncClient, staff_headers: dict, add_customer):
        await self._seed(add_customer)
        response = await client.get(CUSTOMERS, params={"type": "business"}, headers=staff_headers)
        names = [c["name"] for c in response.json()["items"]]
        assert names == ["Hofmann Umzüge"]

    async def test_filter_by_active(self, client: AsyncClient, staff_headers: dict, add_customer):
        await self._seed(add_customer)
        active = await client.get(CUSTOMERS, params={"active": "true"}, headers=staff_headers)
        inactive = await client.get(CUSTOMERS, params={"active": "false"}, headers=staff_headers)
        assert active.json()["total"] == 2
        assert [c["name"] for c in inactive.json()["items"]] == ["Ben Schwarz"]

    async def test_search_by_name(self, client: AsyncClient, staff_headers: dict, add_customer):
        await self._seed(add_customer)
        response = await client.get(CUSTOMERS, params={"search": "schm"}, headers=staff_headers)
        assert [c["name"] for c in response.json()["items"]] == ["Anna Schmidt"]

    async def test_sort_by_start_date_asc(self, client: AsyncClient, staff_headers: dict, add_customer):
        await self._seed(add_customer)
        response = await client.get(
            CUSTOMERS, params={"sort_by": "start_date", "sort_order": "asc"}, headers=staff_headers
        )
        assert [c["name"] for c in response.json()["items"]] == ["Ben Schwarz", "Anna Schmidt", "Hofmann Umzüge"]


# ---------------------------------------------------------------------------
# GET /customers/stats
# ---------------------------------------------------------------------------


class TestCustomerStats:
    async def test_stats(self, client: AsyncClient, staff_headers: dict, add_customer):
        today = utc_today()
        first_of_month = today.replace(day=1)
        await add_customer(start_date=first_of_month)
        await add_customer(start_date=today - timedelta(days=400), customer_type="business")
        await add_customer(start_date=today - timedelta(days=400), end_date=first_of_month)
        await add_customer(start_date=today - timedelta(days=400), end_date=today - timedelta(days=365))

        response = await client.get(f"{CUSTOMERS}/stats", headers=staff_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total_customers"] == 4
        assert data["by_type"] == {"private": 3, "business": 1}
        assert data["new_this_month"] == 1
        assert data["churned_this_month"] == 1
        # A customer whose end date is today still counts as active
        expected_active = 3 if first_of_month == today else 2
        assert data["active_customers"] == expected_active
        assert data["inactive_customers"] == 4 - expected_active
