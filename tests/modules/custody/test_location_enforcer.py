"""Tests for item location enforcement and batch repair."""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.models import AuditLog
from src.core.audit.service import AuditAction
from src.core.exceptions import InvariantViolationError, PersistenceError
from src.modules.custody.enforcer import LocationEnforcer
from src.modules.custody.models import AdjustmentStatus, TransferStockAdjustment
from src.modules.items.models import Item, LocationType


async def _count_audit(db_session: AsyncSession, action: AuditAction) -> int:
    result = await db_session.execute(
        select(func.count()).select_from(AuditLog).where(AuditLog.action == action.value)
    )
    return result.scalar() or 0


class TestLocationRules:
    """Pure checks, no database access."""

    def test_derive_location(self):
        assert LocationEnforcer.derive_location(Item(assigned_to_person_id=7)) == LocationType.PERSON
        assert (
            LocationEnforcer.derive_location(Item(assigned_to_person_id=None, warehouse_id=1))
            == LocationType.WAREHOUSE
        )

    def test_valid_custody_states(self):
        LocationEnforcer.validate_custody(LocationType.WAREHOUSE, 1, None)
        LocationEnforcer.validate_custody(LocationType.PERSON, 1, 5)
        # Person-held items may have lost their home warehouse
        LocationEnforcer.validate_custody(LocationType.PERSON, None, 5)

    def test_person_without_person_id_rejected(self):
        with pytest.raises(InvariantViolationError) as exc_info:
            LocationEnforcer.validate_custody(LocationType.PERSON, 1, None, item_id=3)
        assert exc_info.value.details == {"item_id": 3}

    def test_warehouse_with_person_rejected(self):
        with pytest.raises(InvariantViolationError):
            LocationEnforcer.validate_custody(LocationType.WAREHOUSE, 1, 5)

    def test_warehouse_without_warehouse_id_rejected(self):
        with pytest.raises(InvariantViolationError):
            LocationEnforcer.validate_custody(LocationType.WAREHOUSE, None, None)

    def test_unknown_location_type_rejected(self):
        with pytest.raises(InvariantViolationError):
            LocationEnforcer.validate_custody("garage", 1, None)


class TestLocationEnforcer:
    """Tests for LocationEnforcer against the database."""

    async def test_repair_fixes_flag_of_person_held_item(
        self, db_session: AsyncSession, make_warehouse, make_person, make_item
    ):
        warehouse = await make_warehouse()
        person = await make_person()
        item = await make_item(
            warehouse.id, person_id=person.id, location_type=LocationType.WAREHOUSE
        )
        enforcer = LocationEnforcer(db_session)

        changes = enforcer.repair(item)

        assert changes == {"current_location_type": {"old": "warehouse", "new": "person"}}
        assert item.current_location_type == LocationType.PERSON.value
        assert enforcer.repair(item) == {}

    async def test_repair_refuses_item_without_any_custodian(
        self, db_session: AsyncSession, make_item
    ):
        item = await make_item(None, location_type=LocationType.PERSON)

        with pytest.raises(InvariantViolationError):
            LocationEnforcer(db_session).repair(item)
        assert item.current_location_type == LocationType.PERSON.value

    async def test_reconcile_missing_item_is_noop(self, db_session: AsyncSession):
        result = await LocationEnforcer(db_session).reconcile(999)

        assert result.found is False
        assert result.repaired is False

    async def test_reconcile_is_idempotent(
        self, db_session: AsyncSession, make_warehouse, make_person, make_item
    ):
        warehouse = await make_warehouse()
        person = await make_person()
        item = await make_item(
            warehouse.id, person_id=person.id, location_type=LocationType.WAREHOUSE
        )
        enforcer = LocationEnforcer(db_session)

        first = await enforcer.reconcile(item.id)
        second = await enforcer.reconcile(item.id)

        assert first.found and first.repaired
        assert first.changes["current_location_type"]["new"] == "person"
        assert second.found and not second.repaired
        assert await _count_audit(db_session, AuditAction.RECONCILE_LOCATION) == 1

        stored = await db_session.get(Item, item.id, populate_existing=True)
        assert stored.current_location_type == LocationType.PERSON.value
        assert stored.assigned_to_person_id == person.id

    async def test_reconcile_all_reports_each_outcome(
        self, db_session: AsyncSession, make_warehouse, make_person, make_item
    ):
        warehouse = await make_warehouse()
        person = await make_person()
        correct = await make_item(warehouse.id, title="Monitor")
        broken = await make_item(
            warehouse.id,
            title="Phone",
            person_id=person.id,
            location_type=LocationType.WAREHOUSE,
        )
        orphan = await make_item(None, title="Router", location_type=LocationType.PERSON)
        correct_id, broken_id, orphan_id = correct.id, broken.id, orphan.id

        report = await LocationEnforcer(db_session).reconcile_all()

        assert report.total == 3
        assert report.repaired == 1
        assert report.already_correct == 1
        assert report.failed == 1
        assert report.failures[0].item_id == orphan_id
        assert report.failures[0].error == "InvariantViolationError"

        stored = await db_session.get(Item, broken_id, populate_existing=True)
        assert stored.current_location_type == LocationType.PERSON.value
        stored = await db_session.get(Item, correct_id, populate_existing=True)
        assert stored.current_location_type == LocationType.WAREHOUSE.value

    async def test_reconcile_all_keeps_going_after_storage_failure(
        self, db_session: AsyncSession, make_warehouse, make_person, make_item, monkeypatch
    ):
        warehouse = await make_warehouse()
        person = await make_person()
        first = await make_item(
            warehouse.id, title="Tablet", person_id=person.id, location_type=LocationType.WAREHOUSE
        )
        second = await make_item(
            warehouse.id, title="Scanner", person_id=person.id, location_type=LocationType.WAREHOUSE
        )
        first_id, second_id = first.id, second.id

        original_repair = LocationEnforcer.repair

        def flaky_repair(self, item):
            if item.id == first_id:
                raise PersistenceError("Failed to reconcile item")
            return original_repair(self, item)

        monkeypatch.setattr(LocationEnforcer, "repair", flaky_repair)

        report = await LocationEnforcer(db_session).reconcile_all()

        assert report.total == 2
        assert report.failed == 1
        assert report.repaired == 1
        assert report.failures[0].error == "PersistenceError"

        stored_first = await db_session.get(Item, first_id, populate_existing=True)
        stored_second = await db_session.get(Item, second_id, populate_existing=True)
        assert stored_first.current_location_type == LocationType.WAREHOUSE.value
        assert stored_second.current_location_type == LocationType.PERSON.value

    async def test_release_untracked_assignments(
        self, db_session: AsyncSession, make_warehouse, make_person, make_item
    ):
        warehouse = await make_warehouse(stock_qty=3)
        person = await make_person(stock_qty=2)
        untracked = await make_item(warehouse.id, title="Camera", person_id=person.id)
        tracked = await make_item(warehouse.id, title="Headset", person_id=person.id)
        db_session.add(
            TransferStockAdjustment(
                item_id=tracked.id,
                person_id=person.id,
                giving_warehouse_id=warehouse.id,
                transfer_stock_qty=1,
                status=AdjustmentStatus.ACTIVE.value,
            )
        )
        await db_session.commit()
        untracked_id, tracked_id = untracked.id, tracked.id

        report = await LocationEnforcer(db_session).release_untracked_assignments()

        assert report.total == 1
        assert report.released == 1
        assert report.released_item_ids == [untracked_id]

        released = await db_session.get(Item, untracked_id, populate_existing=True)
        assert released.assigned_to_person_id is None
        assert released.current_location_type == LocationType.WAREHOUSE.value
        still_held = await db_session.get(Item, tracked_id, populate_existing=True)
        assert still_held.assigned_to_person_id == person.id

        await db_session.refresh(warehouse)
        await db_session.refresh(person)
        assert warehouse.stock_qty == 4
        assert person.stock_qty == 1
        assert await _count_audit(db_session, AuditAction.RELEASE_UNTRACKED) == 1


class TestReconcileEndpoints:
    """Tests for reconciliation API endpoints."""

    async def test_reconcile_item_endpoint(
        self, client: AsyncClient, auth_headers: dict, make_warehouse, make_person, make_item
    ):
        warehouse = await make_warehouse()
        person = await make_person()
        item = await make_item(
            warehouse.id, person_id=person.id, location_type=LocationType.WAREHOUSE
        )

        response = await client.post(f"/api/v1/custody/reconcile/{item.id}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["found"] is True
        assert data["repaired"] is True

    async def test_reconcile_missing_item_endpoint(self, client: AsyncClient, auth_headers: dict):
        response = await client.post("/api/v1/custody/reconcile/4242", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["found"] is False

    async def test_reconcile_all_endpoint(
        self, client: AsyncClient, auth_headers: dict, make_warehouse, make_item
    ):
        warehouse = await make_warehouse()
        await make_item(warehouse.id)

        response = await client.post("/api/v1/custody/reconcile", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 1
        assert data["already_correct"] == 1
        assert data["failures"] == []

    async def test_reconcile_requires_auth(self, client: AsyncClient):
        response = await client.post("/api/v1/custody/reconcile")
        assert response.status_code in (401, 403)
