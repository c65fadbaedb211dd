"""Tests for Offboarding module."""

from types import SimpleNamespace

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import ConflictError, ValidationError
from src.modules.access.models import AccessStatus, EmployeeAccess
from src.modules.access.schemas import AccessCategoryCreate, AccessItemCreate, GrantRequest
from src.modules.access.service import AccessService
from src.modules.custody.schemas import AssignRequest
from src.modules.custody.service import CustodyService
from src.modules.items.models import Item, LocationType
from src.modules.offboarding.models import TaskStatus, TaskType
from src.modules.offboarding.schemas import TaskCreate, TaskGenerateRequest, TaskStatusUpdate
from src.modules.offboarding.service import OffboardingService
from src.modules.people.models import Person
from src.modules.warehouses.models import Warehouse


@pytest.fixture
async def leaver(
    db_session: AsyncSession, super_admin, make_warehouse, make_person, make_item
) -> SimpleNamespace:
    """A person holding one laptop (issued through custody) and one active VPN grant."""
    warehouse = await make_warehouse(stock_qty=5)
    person = await make_person("Grace Wanjiru")
    item = await make_item(warehouse.id)
    ids = SimpleNamespace(
        warehouse_id=warehouse.id, person_id=person.id, item_id=item.id, admin_id=super_admin.id
    )

    await CustodyService(db_session).assign(
        AssignRequest(item_id=ids.item_id, person_id=ids.person_id), user_id=ids.admin_id
    )

    access = AccessService(db_session)
    category = await access.create_category(AccessCategoryCreate(title="Network"), ids.admin_id)
    vpn = await access.create_access_item(
        AccessItemCreate(name="VPN", category_id=category.id), ids.admin_id
    )
    grant = await access.grant(
        GrantRequest(person_id=ids.person_id, access_item_id=vpn.id),
        granted_by="Asset Admin",
        user_id=ids.admin_id,
    )
    ids.grant_id = grant.id
    return ids


async def _reload(db_session: AsyncSession, model, obj_id: int):
    return await db_session.get(model, obj_id, populate_existing=True)


class TestOffboardingService:
    """Tests for OffboardingService."""

    async def test_generate_creates_one_task_per_item_and_grant(
        self, db_session: AsyncSession, leaver
    ):
        service = OffboardingService(db_session)

        result = await service.generate_for_person(
            leaver.person_id, TaskGenerateRequest(assigned_to="IT desk"), leaver.admin_id
        )

        assert result.skipped == 0
        by_type = {t.task_type: t for t in result.created}
        assert set(by_type) == {TaskType.ITEM_COLLECTION.value, TaskType.ACCESS_REVOCATION.value}
        assert by_type[TaskType.ITEM_COLLECTION.value].item_id == leaver.item_id
        assert by_type[TaskType.ITEM_COLLECTION.value].title == "Collect Laptop"
        assert by_type[TaskType.ACCESS_REVOCATION.value].access_grant_id == leaver.grant_id
        assert by_type[TaskType.ACCESS_REVOCATION.value].title == "Revoke VPN access"
        assert all(t.status == TaskStatus.PENDING.value for t in result.created)
        assert all(t.assigned_to == "IT desk" for t in result.created)

    async def test_generate_twice_skips_open_tasks(self, db_session: AsyncSession, leaver):
        service = OffboardingService(db_session)
        await service.generate_for_person(leaver.person_id, TaskGenerateRequest(), leaver.admin_id)

        again = await service.generate_for_person(
            leaver.person_id, TaskGenerateRequest(), leaver.admin_id
        )

        assert again.created == []
        assert again.skipped == 2
        assert len(await service.list_tasks(person_id=leaver.person_id)) == 2

    async def test_item_task_requires_item_held_by_person(
        self, db_session: AsyncSession, leaver, make_person
    ):
        other = await make_person("Peter Mwangi")
        service = OffboardingService(db_session)

        with pytest.raises(ConflictError):
            await service.create_task(
                TaskCreate(
                    person_id=other.id,
                    task_type=TaskType.ITEM_COLLECTION,
                    title="Collect laptop",
                    item_id=leaver.item_id,
                ),
                created_by_id=leaver.admin_id,
            )

    async def test_item_task_without_item_id_rejected(self, db_session: AsyncSession, leaver):
        with pytest.raises(ValidationError):
            await OffboardingService(db_session).create_task(
                TaskCreate(
                    person_id=leaver.person_id,
                    task_type=TaskType.ITEM_COLLECTION,
                    title="Collect laptop",
                ),
                created_by_id=leaver.admin_id,
            )

    async def test_duplicate_open_task_rejected(self, db_session: AsyncSession, leaver):
        service = OffboardingService(db_session)
        data = TaskCreate(
            person_id=leaver.person_id,
            task_type=TaskType.ACCESS_REVOCATION,
            title="Revoke VPN",
            access_grant_id=leaver.grant_id,
        )
        await service.create_task(data, created_by_id=leaver.admin_id)

        with pytest.raises(ConflictError):
            await service.create_task(data, created_by_id=leaver.admin_id)

    async def test_asset_collected_returns_item_to_warehouse(
        self, db_session: AsyncSession, leaver, super_admin
    ):
        service = OffboardingService(db_session)
        task = await service.create_task(
            TaskCreate(
                person_id=leaver.person_id,
                task_type=TaskType.ITEM_COLLECTION,
                title="Collect laptop",
                item_id=leaver.item_id,
            ),
            created_by_id=leaver.admin_id,
        )
        task_id = task.id

        updated = await service.update_status(
            task_id, TaskStatusUpdate(status=TaskStatus.ASSET_COLLECTED), super_admin
        )
        assert updated.status == TaskStatus.ASSET_COLLECTED.value
        assert updated.completed_at is None

        item = await _reload(db_session, Item, leaver.item_id)
        assert item.assigned_to_person_id is None
        assert item.current_location_type == LocationType.WAREHOUSE.value
        assert item.warehouse_id == leaver.warehouse_id
        assert (await _reload(db_session, Warehouse, leaver.warehouse_id)).stock_qty == 5
        assert (await _reload(db_session, Person, leaver.person_id)).stock_qty == 0

        done = await service.update_status(
            task_id, TaskStatusUpdate(status=TaskStatus.COMPLETED, notes="Signed off"), super_admin
        )
        assert done.status == TaskStatus.COMPLETED.value
        assert done.completed_at is not None
        assert done.notes == "Signed off"

    async def test_item_task_cannot_skip_collection(
        self, db_session: AsyncSession, leaver, super_admin
    ):
        service = OffboardingService(db_session)
        task = await service.create_task(
            TaskCreate(
                person_id=leaver.person_id,
                task_type=TaskType.ITEM_COLLECTION,
                title="Collect laptop",
                item_id=leaver.item_id,
            ),
            created_by_id=leaver.admin_id,
        )
        task_id = task.id

        with pytest.raises(ConflictError):
            await service.update_status(
                task_id, TaskStatusUpdate(status=TaskStatus.COMPLETED), super_admin
            )

        item = await _reload(db_session, Item, leaver.item_id)
        assert item.assigned_to_person_id == leaver.person_id

    async def test_completing_access_task_revokes_grant(
        self, db_session: AsyncSession, leaver, super_admin
    ):
        service = OffboardingService(db_session)
        task = await service.create_task(
            TaskCreate(
                person_id=leaver.person_id,
                task_type=TaskType.ACCESS_REVOCATION,
                title="Revoke VPN",
                access_grant_id=leaver.grant_id,
            ),
            created_by_id=leaver.admin_id,
        )

        await service.update_status(
            task.id, TaskStatusUpdate(status=TaskStatus.COMPLETED), super_admin
        )

        grant = await _reload(db_session, EmployeeAccess, leaver.grant_id)
        assert grant.status == AccessStatus.REVOKED.value
        assert grant.revoked_by == super_admin.full_name

    async def test_cancelled_task_is_final(self, db_session: AsyncSession, leaver, super_admin):
        service = OffboardingService(db_session)
        task = await service.create_task(
            TaskCreate(person_id=leaver.person_id, title="Return badge"),
            created_by_id=leaver.admin_id,
        )
        task_id = task.id
        await service.update_status(
            task_id, TaskStatusUpdate(status=TaskStatus.CANCELLED), super_admin
        )

        with pytest.raises(ConflictError):
            await service.update_status(
                task_id, TaskStatusUpdate(status=TaskStatus.IN_PROGRESS), super_admin
            )
        assert await service.list_tasks(person_id=leaver.person_id, open_only=True) == []


class TestOffboardingEndpoints:
    """Tests for offboarding API endpoints."""

    async def test_generate_and_list(self, client: AsyncClient, auth_headers, leaver):
        response = await client.post(
            f"/api/v1/offboarding/people/{leaver.person_id}/generate",
            json={"due_date": "2026-11-30"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert len(data["created"]) == 2
        assert data["skipped"] == 0

        response = await client.get(
            "/api/v1/offboarding/tasks",
            params={"person_id": leaver.person_id, "task_type": "access_revocation"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        tasks = response.json()["data"]
        assert len(tasks) == 1
        assert tasks[0]["due_date"] == "2026-11-30"

    async def test_generate_for_unknown_person_returns_404(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/v1/offboarding/people/999/generate", headers=auth_headers
        )
        assert response.status_code == 404

    async def test_invalid_transition_returns_409(self, client: AsyncClient, auth_headers, leaver):
        response = await client.post(
            "/api/v1/offboarding/tasks",
            json={
                "person_id": leaver.person_id,
                "task_type": "item_collection",
                "title": "Collect laptop",
                "item_id": leaver.item_id,
            },
            headers=auth_headers,
        )
        assert response.status_code == 201
        task_id = response.json()["data"]["id"]

        response = await client.patch(
            f"/api/v1/offboarding/tasks/{task_id}/status",
            json={"status": "in_progress"},
            headers=auth_headers,
        )
        assert response.status_code == 409
        assert response.json()["details"]["status"] == "pending"

    async def test_collect_and_filter_by_status(self, client: AsyncClient, auth_headers, leaver):
        created = await client.post(
            "/api/v1/offboarding/tasks",
            json={
                "person_id": leaver.person_id,
                "task_type": "item_collection",
                "title": "Collect laptop",
                "item_id": leaver.item_id,
            },
            headers=auth_headers,
        )
        task_id = created.json()["data"]["id"]

        response = await client.patch(
            f"/api/v1/offboarding/tasks/{task_id}/status",
            json={"status": "asset_collected", "warehouse_id": leaver.warehouse_id},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "asset_collected"

        response = await client.get(
            "/api/v1/offboarding/tasks", params={"status": "asset_collected"}, headers=auth_headers
        )
        assert [t["id"] for t in response.json()["data"]] == [task_id]

        item = await client.get(f"/api/v1/items/{leaver.item_id}", headers=auth_headers)
        assert item.json()["data"]["current_location_type"] == "warehouse"

    async def test_listing_requires_token(self, client: AsyncClient):
        response = await client.get("/api/v1/offboarding/tasks")
        assert response.status_code == 401
