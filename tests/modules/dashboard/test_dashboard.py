"""Tests for Dashboard API: GET /api/v1/dashboard/summary (Admin/SuperAdmin only)."""

from datetime import date, timedelta

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.models import UserRole
from src.core.auth.service import AuthService
from src.modules.custody.schemas import AssignRequest
from src.modules.custody.service import CustodyService
from src.modules.items.models import LocationType
from src.modules.offboarding.schemas import TaskCreate
from src.modules.offboarding.service import OffboardingService
from src.modules.people.models import PersonStatus
from src.modules.people.schemas import PersonUpdate
from src.modules.people.service import PersonService
from src.modules.procurement.models import Purchase, PurchaseStatus


async def _get_token(client: AsyncClient, db_session: AsyncSession, role: UserRole) -> str:
    """Create user with given role and return access token."""
    email = f"dashboard_{role.value.lower()}@acmeassets.com"
    auth = AuthService(db_session)
    await auth.create_user(
        email=email,
        password="Storeroom42",
        full_name="Test User",
        role=role,
    )
    await db_session.commit()
    _, token, _ = await auth.authenticate(email, "Storeroom42")
    await db_session.commit()
    return token


class TestDashboardAccess:
    """Tests for GET /dashboard/summary access rules."""

    async def test_dashboard_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/dashboard/summary")
        assert response.status_code == 401

    async def test_dashboard_admin_ok(self, client: AsyncClient, db_session: AsyncSession):
        token = await _get_token(client, db_session, UserRole.ADMIN)

        response = await client.get(
            "/api/v1/dashboard/summary",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["data"]["items_total"] == 0
        assert set(data["data"]["purchases_by_status"]) == {s.value for s in PurchaseStatus}

    async def test_dashboard_user_forbidden(self, client: AsyncClient, db_session: AsyncSession):
        token = await _get_token(client, db_session, UserRole.USER)

        response = await client.get(
            "/api/v1/dashboard/summary",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 403


class TestDashboardSummary:
    """Tests for the summary numbers."""

    async def test_summary_counts(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        auth_headers: dict,
        make_warehouse,
        make_person,
        make_item,
    ):
        warehouse = await make_warehouse(stock_qty=3)
        active = await make_person("Amina Yusuf")
        await make_person("Brian Mwangi", status=PersonStatus.INACTIVE)
        assigned = await make_item(warehouse.id, title="Laptop")
        await make_item(warehouse.id, title="Monitor")
        # Held without an adjustment and flagged wrong
        await make_item(
            warehouse.id, title="Phone", person_id=active.id, location_type=LocationType.WAREHOUSE
        )
        db_session.add(Purchase(products="Cables", quantity=2, status=PurchaseStatus.PENDING.value))
        await db_session.commit()
        await CustodyService(db_session).assign(
            AssignRequest(item_id=assigned.id, person_id=active.id)
        )

        response = await client.get("/api/v1/dashboard/summary", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["items_total"] == 3
        assert data["items_with_people"] == 1
        assert data["items_in_warehouses"] == 2
        assert data["warehouses_count"] == 1
        assert data["active_people_count"] == 1
        assert data["inactive_people_count"] == 1
        assert data["active_adjustments_count"] == 1
        assert data["active_grants_count"] == 0
        assert data["purchases_by_status"]["PENDING"] == 1
        assert data["location_mismatch_count"] == 1
        assert data["untracked_assignments_count"] == 1

    async def test_reconcile_clears_mismatch_alert(
        self,
        client: AsyncClient,
        auth_headers: dict,
        make_warehouse,
        make_person,
        make_item,
    ):
        warehouse_id = (await make_warehouse()).id
        person_id = (await make_person()).id
        await make_item(
            warehouse_id, person_id=person_id, location_type=LocationType.WAREHOUSE
        )

        await client.post("/api/v1/custody/reconcile", headers=auth_headers)
        response = await client.get("/api/v1/dashboard/summary", headers=auth_headers)

        data = response.json()["data"]
        assert data["location_mismatch_count"] == 0
        assert data["untracked_assignments_count"] == 1

        await client.post("/api/v1/custody/release-untracked", headers=auth_headers)
        response = await client.get("/api/v1/dashboard/summary", headers=auth_headers)

        data = response.json()["data"]
        assert data["untracked_assignments_count"] == 0
        assert data["items_with_people"] == 0

    async def test_offboarding_alerts(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        auth_headers: dict,
        super_admin,
        make_person,
    ):
        leaving = await make_person("Amina Yusuf")
        staying = await make_person("Brian Mwangi")
        gone = await make_person("Carol Atieno", status=PersonStatus.INACTIVE)
        people = PersonService(db_session)
        soon = date.today() + timedelta(days=10)
        await people.update_person(leaving.id, PersonUpdate(contract_end_date=soon), super_admin.id)
        await people.update_person(
            staying.id,
            PersonUpdate(contract_end_date=date.today() + timedelta(days=365)),
            super_admin.id,
        )
        await people.update_person(gone.id, PersonUpdate(contract_end_date=soon), super_admin.id)
        await OffboardingService(db_session).create_task(
            TaskCreate(person_id=leaving.id, title="Exit interview"), created_by_id=super_admin.id
        )

        response = await client.get("/api/v1/dashboard/summary", headers=auth_headers)

        data = response.json()["data"]
        assert data["contracts_expiring_count"] == 1
        assert data["open_offboarding_tasks_count"] == 1
