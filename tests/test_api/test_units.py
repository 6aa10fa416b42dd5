"""Tests for the units endpoints: CRUD, filters, rentals, and statistics."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from storage_dash.timeutils import utc_today

pytestmark = pytest.mark.asyncio

UNITS = "/api/v1/units"


async def _create_unit(client: AsyncClient, headers: dict, unit_id: str = "A001", **overrides) -> dict:
    body = {"id": unit_id, "size": "5m²", "price_per_month": "49.00"}
    body.update(overrides)
    response = await client.post(UNITS, json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


# ---------------------------------------------------------------------------
# Create / read / update / delete
# ---------------------------------------------------------------------------


class TestUnitCrud:
    async def test_create_unit(self, client: AsyncClient, manager_headers: dict):
        data = await _create_unit(client, manager_headers, floor=2, notes="Near the lift")
        assert data["id"] == "A001"
        assert data["size"] == "5m²"
        assert float(data["price_per_month"]) == 49.0
        assert data["is_occupied"] is False
        assert data["customer_id"] is None
        assert data["floor"] == 2

    async def test_duplicate_id_is_409(self, client: AsyncClient, manager_headers: dict):
        await _create_unit(client, manager_headers)
        response = await client.post(
            UNITS, json={"id": "A001", "size": "10m²", "price_per_month": "89.00"}, headers=manager_headers
        )
        assert response.status_code == 409

    async def test_invalid_size_is_422(self, client: AsyncClient, manager_headers: dict):
        response = await client.post(
            UNITS, json={"id": "Z001", "size": "7m²", "price_per_month": "10.00"}, headers=manager_headers
        )
        assert response.status_code == 422

    async def test_negative_price_is_422(self, client: AsyncClient, manager_headers: dict):
        response = await client.post(
            UNITS, json={"id": "Z001", "size": "5m²", "price_per_month": "-1"}, headers=manager_headers
        )
        assert response.status_code == 422

    async def test_get_unit(self, client: AsyncClient, manager_headers: dict, staff_headers: dict):
        await _create_unit(client, manager_headers)
        response = await client.get(f"{UNITS}/A001", headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["id"] == "A001"

    async def test_get_missing_unit_is_404(self, client: AsyncClient, staff_headers: dict):
        response = await client.get(f"{UNITS}/NOPE", headers=staff_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Unit not found"

    async def test_update_unit(self, client: AsyncClient, manager_headers: dict):
        await _create_unit(client, manager_headers)
        response = await client.put(
            f"{UNITS}/A001", json={"price_per_month": "55.50", "notes": "Repainted"}, headers=manager_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert float(data["price_per_month"]) == 55.5
        assert data["notes"] == "Repainted"
        assert data["size"] == "5m²"

    async def test_delete_free_unit(self, client: AsyncClient, manager_headers: dict, admin_headers: dict):
        await _create_unit(client, manager_headers)
        response = await client.delete(f"{UNITS}/A001", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Unit deleted"

        missing = await client.get(f"{UNITS}/A001", headers=admin_headers)
        assert missing.status_code == 404

    async def test_delete_occupied_unit_is_409(self, client: AsyncClient, admin_headers: dict, add_customer, add_unit):
        customer = await add_customer(start_date=utc_today() - timedelta(days=30))
        unit = await add_unit(customer=customer)
        response = await client.delete(f"{UNITS}/{unit.id}", headers=admin_headers)
        assert response.status_code == 409


# ---------------------------------------------------------------------------
# Role enforcement
# ---------------------------------------------------------------------------


class TestUnitPermissions:
    async def test_requires_authentication(self, client: AsyncClient):
        response = await client.get(UNITS)
        assert response.status_code == 401

    async def test_staff_can_read(self, client: AsyncClient, staff_headers: dict):
        response = await client.get(UNITS, headers=staff_headers)
        assert response.status_code == 200

    async def test_staff_cannot_create(self, client: AsyncClient, staff_headers: dict):
        response = await client.post(
            UNITS, json={"id": "A001", "size": "5m²", "price_per_month": "49.00"}, headers=staff_headers
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Insufficient permissions for this action"

    async def test_manager_cannot_delete(self, client: AsyncClient, manager_headers: dict):
        await _create_unit(client, manager_headers)
        response = await client.delete(f"{UNITS}/A001", headers=manager_headers)
        assert response.status_code == 403


# ---------------------------------------------------------------------------
# GET /units: filters, sorting, pagination
# ---------------------------------------------------------------------------


class TestListUnits:
    async def _seed(self, add_customer, add_unit) -> None:
        customer = await add_customer(start_date=utc_today() - timedelta(days=60))
        await add_unit(size="5m²", price="49.00", customer=customer)
        await add_unit(size="5m²", price="49.00")
        await add_unit(size="10m²", price="89.00", customer=customer)
        await add_unit(size="20m²", price="149.00")

    async def test_list_all_sorted_by_id(self, client: AsyncClient, staff_headers: dict, add_customer, add_unit):
        await self._seed(add_customer, add_unit)
        response = await client.get(UNITS, headers=staff_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 4
        assert [u["id"] for u in data["items"]] == ["U001", "U002", "U003", "U004"]
        assert data["page"] == 1
        assert data["pages"] == 1

    async def test_filter_by_size(self, client: AsyncClient, staff_headers: dict, add_customer, add_unit):
        await self._seed(add_customer, add_unit)
        response = await client.get(UNITS, params={"size": "5m²"}, headers=staff_headers)
        assert response.json()["total"] == 2

    async def test_filter_by_occupied(self, client: AsyncClient, staff_headers: dict, add_customer, add_unit):
        await self._seed(add_customer, add_unit)
        occupied = await client.get(UNITS, params={"occupied": "true"}, headers=staff_headers)
        free = await client.get(UNITS, params={"occupied": "false"}, headers=staff_headers)
        assert occupied.json()["total"] == 2
        assert free.json()["total"] == 2
        assert all(u["customer"] is not None for u in occupied.json()["items"])

    async def test_search_by_id(self, client: AsyncClient, staff_headers: dict, add_customer, add_unit):
        await self._seed(add_customer, add_unit)
        response = await client.get(UNITS, params={"search": "003"}, headers=staff_headers)
        assert [u["id"] for u in response.json()["items"]] == ["U003"]

    async def test_sort_by_price_desc(self, client: AsyncClient, staff_headers: dict, add_customer, add_unit):
        await self._seed(add_customer, add_unit)
        response = await client.get(
            UNITS, params={"sort_by": "price_per_month", "sort_order": "desc"}, headers=staff_headers
        )
        prices = [float(u["price_per_month"]) for u in response.json()["items"]]
        assert prices == sorted(prices, reverse=True)

    async def test_pagination(self, client: AsyncClient, staff_headers: dict, add_customer, add_unit):
        await self._seed(add_customer, add_unit)
        response = await client.get(UNITS, params={"page": "2", "limit": "3"}, headers=staff_headers)
        data = response.json()
        assert data["total"] == 4
        assert data["pages"] == 2
        assert [u["id"] for u in data["items"]] == ["U004"]

    async def test_malformed_pagination_falls_back(
        self, client: AsyncClient, staff_headers: dict, add_customer, add_unit
    ):
        await self._seed(add_customer, add_unit)
        response = await client.get(UNITS, params={"page": "abc", "limit": "-5"}, headers=staff_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["page"] == 1
        assert data["limit"] == 20


# ---------------------------------------------------------------------------
# Rent / release
# ---------------------------------------------------------------------------


class TestRentals:
    async def test_rent_and_release(self, client: AsyncClient, manager_headers: dict, add_customer, add_unit):
        customer = await add_customer(start_date=utc_today() - timedelta(days=10))
        unit = await add_unit()

        rented = await client.post(
            f"{UNITS}/{unit.id}/rent", json={"customer_id": customer.id}, headers=manager_headers
        )
        assert rented.status_code == 200
        data = rented.json()
        assert data["is_occupied"] is True
        assert data["customer_id"] == customer.id
        assert data["customer"]["name"] == customer.name
        assert data["rented_since"] == utc_today().isoformat()

        released = await client.post(f"{UNITS}/{unit.id}/release", headers=manager_headers)
        assert released.status_code == 200
        data = released.json()
        assert data["is_occupied"] is False
        assert data["customer_id"] is None
        assert data["rented_since"] is None

    async def test_rent_occupied_unit_is_409(self, client: AsyncClient, manager_headers: dict, add_customer, add_unit):
        customer = await add_customer(start_date=utc_today() - timedelta(days=10))
        unit = await add_unit(customer=customer)
        response = await client.post(
            f"{UNITS}/{unit.id}/rent", json={"customer_id": customer.id}, headers=manager_headers
        )
        assert response.status_code == 409

    async def test_rent_to_missing_customer_is_404(self, client: AsyncClient, manager_headers: dict, add_unit):
        unit = await add_unit()
        response = await client.post(f"{UNITS}/{unit.id}/rent", json={"customer_id": "C999"}, headers=manager_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Customer not found"

    async def test_rent_to_churned_customer_is_409(
        self, client: AsyncClient, manager_headers: dict, add_customer, add_unit
    ):
        customer = await add_customer(
            start_date=utc_today() - timedelta(days=100), end_date=utc_today() - timedelta(days=1)
        )
        unit = await add_unit()
        response = await client.post(
            f"{UNITS}/{unit.id}/rent", json={"customer_id": customer.id}, headers=manager_headers
        )
        assert response.status_code == 409

    async def test_release_free_unit_is_409(self, client: AsyncClient, manager_headers: dict, add_unit):
        unit = await add_unit()
        response = await client.post(f"{UNITS}/{unit.id}/release", headers=manager_headers)
        assert response.status_code == 409

    async def test_staff_cannot_rent(self, client: AsyncClient, staff_headers: dict, add_customer, add_unit):
        customer = await add_customer(start_date=utc_today())
        unit = await add_unit()
        response = await client.post(f"{UNITS}/{unit.id}/rent", json={"customer_id": customer.id}, headers=staff_headers)
        assert response.status_code == 403


# ---------------------------------------------------------------------------
# GET /units/stats
# ---------------------------------------------------------------------------


class TestUnitStats:
    async def test_stats(self, client: AsyncClient, staff_headers: dict, add_customer, add_unit):
        customer = await add_customer(start_date=utc_today() - timedelta(days=30))
        await add_unit(size="5m²", price="50.00", customer=customer)
        await add_unit(size="5m²", price="50.00")
        await add_unit(size="10m²", price="100.00", customer=customer)
        await add_unit(size="10m²", price="100.00")

        response = await client.get(f"{UNITS}/stats", headers=staff_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total_units"] == 4
        assert data["occupied_units"] == 2
        assert data["available_units"] == 2
        assert float(data["occupancy_rate"]) == 50.0
        assert float(data["current_monthly_revenue"]) == 150.0
        assert float(data["total_potential_revenue"]) == 300.0
        assert float(data["revenue_utilization"]) == 50.0
        assert [row["size"] for row in data["by_size"]] == ["5m²", "10m²"]
        assert float(data["avg_price_by_size"]["10m²"]) == 100.0

    async def test_stats_empty(self, client: AsyncClient, staff_headers: dict):
        response = await client.get(f"{UNITS}/stats", headers=staff_headers)
        data = response.json()
        assert data["total_units"] == 0
        assert float(data["occupancy_rate"]) == 0.0
        assert data["by_size"] == []
