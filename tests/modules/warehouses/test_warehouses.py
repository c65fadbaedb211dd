"""Tests for Warehouses module."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import ConflictError, DuplicateError, NotFoundError
from src.modules.custody.schemas import RelocateRequest
from src.modules.custody.service import CustodyService
from src.modules.warehouses.schemas import WarehouseCreate, WarehouseUpdate
from src.modules.warehouses.service import WarehouseService


class TestWarehouseService:
    """Tests for WarehouseService."""

    async def test_create_warehouse(self, db_session: AsyncSession, super_admin):
        warehouse = await WarehouseService(db_session).create_warehouse(
            WarehouseCreate(title="Central", location="Nairobi", stock_qty=3),
            created_by_id=super_admin.id,
        )

        assert warehouse.id is not None
        assert warehouse.stock_qty == 3

    async def test_duplicate_title_rejected(self, db_session: AsyncSession, super_admin):
        service = WarehouseService(db_session)
        await service.create_warehouse(WarehouseCreate(title="Central"), super_admin.id)

        with pytest.raises(DuplicateError):
            await service.create_warehouse(WarehouseCreate(title="Central"), super_admin.id)

    async def test_stock_correction(self, db_session: AsyncSession, super_admin, make_warehouse):
        warehouse = await make_warehouse(stock_qty=10)

        updated = await WarehouseService(db_session).update_warehouse(
            warehouse.id, WarehouseUpdate(stock_qty=7), super_admin.id
        )

        assert updated.stock_qty == 7

    async def test_count_items_excludes_items_with_people(
        self, db_session: AsyncSession, make_warehouse, make_person, make_item
    ):
        warehouse = await make_warehouse()
        person = await make_person()
        await make_item(warehouse.id, title="Monitor")
        await make_item(warehouse.id, title="Phone", person_id=person.id)

        assert await WarehouseService(db_session).count_items(warehouse.id) == 1

    async def test_delete_warehouse_with_items_rejected(
        self, db_session: AsyncSession, super_admin, make_warehouse, make_item
    ):
        warehouse = await make_warehouse()
        await make_item(warehouse.id)

        with pytest.raises(ConflictError):
            await WarehouseService(db_session).delete_warehouse(warehouse.id, super_admin.id)

    async def test_delete_warehouse_with_movement_history_rejected(
        self, db_session: AsyncSession, super_admin, make_warehouse, make_item
    ):
        old_id = (await make_warehouse("Old Store", stock_qty=1)).id
        new_id = (await make_warehouse("New Store", stock_qty=0)).id
        item_id = (await make_item(old_id)).id
        await CustodyService(db_session).relocate(
            RelocateRequest(item_id=item_id, to_warehouse_id=new_id)
        )

        with pytest.raises(ConflictError) as exc_info:
            await WarehouseService(db_session).delete_warehouse(old_id, super_admin.id)

        assert exc_info.value.details["movements"] == 1

    async def test_delete_empty_warehouse(
        self, db_session: AsyncSession, super_admin, make_warehouse
    ):
        warehouse = await make_warehouse()
        warehouse_id = warehouse.id
        service = WarehouseService(db_session)

        await service.delete_warehouse(warehouse_id, super_admin.id)

        with pytest.raises(NotFoundError):
            await service.get_warehouse_by_id(warehouse_id)


class TestWarehouseEndpoints:
    """Tests for warehouse API endpoints."""

    async def test_create_and_get(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/v1/warehouses",
            json={"title": "Central", "location": "Nairobi", "warehouse_type": "main"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        warehouse_id = response.json()["data"]["id"]

        response = await client.get(f"/api/v1/warehouses/{warehouse_id}", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "Central"
        assert data["stock_qty"] == 0
        assert data["item_count"] == 0

    async def test_negative_stock_rejected(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/v1/warehouses",
            json={"title": "Central", "stock_qty": -1},
            headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_duplicate_title_returns_409(self, client: AsyncClient, auth_headers: dict):
        await client.post("/api/v1/warehouses", json={"title": "Central"}, headers=auth_headers)

        response = await client.post(
            "/api/v1/warehouses", json={"title": "Central"}, headers=auth_headers
        )

        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateError"

    async def test_list_with_search(self, client: AsyncClient, auth_headers: dict, make_warehouse):
        await make_warehouse("Central")
        await make_warehouse("Coast Depot")

        response = await client.get(
            "/api/v1/warehouses", params={"search": "coast"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert [w["title"] for w in response.json()["data"]] == ["Coast Depot"]
