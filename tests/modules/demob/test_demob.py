"""Tests for Demobilization module."""

from types import SimpleNamespace

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.modules.access.models import AccessCategory, AccessItem, AccessStatus, EmployeeAccess
from src.modules.access.schemas import GrantRequest
from src.modules.access.service import AccessService
from src.modules.custody.models import AdjustmentStatus, TransferStockAdjustment
from src.modules.custody.schemas import AssignRequest
from src.modules.custody.service import CustodyService
from src.modules.demob.models import DemobDocument
from src.modules.demob.schemas import DemobDocumentUpdate, DemobRequest
from src.modules.demob.service import DemobService
from src.modules.items.models import Item, LocationType
from src.modules.people.models import Person, PersonStatus
from src.modules.warehouses.models import Warehouse


@pytest.fixture
async def leaver(db_session: AsyncSession, make_warehouse, make_person, make_item) -> SimpleNamespace:
    """Person holding two items and one active grant."""
    warehouse = await make_warehouse(stock_qty=2)
    person = await make_person("Leaving Person")
    laptop = await make_item(warehouse.id, title="Laptop")
    phone = await make_item(warehouse.id, title="Phone")

    category = AccessCategory(title="Network")
    db_session.add(category)
    await db_session.flush()
    vpn = AccessItem(name="VPN", category_id=category.id)
    db_session.add(vpn)
    await db_session.commit()

    custody = CustodyService(db_session)
    await custody.assign(AssignRequest(item_id=laptop.id, person_id=person.id))
    await custody.assign(AssignRequest(item_id=phone.id, person_id=person.id))
    grant = await AccessService(db_session).grant(
        GrantRequest(person_id=person.id, access_item_id=vpn.id)
    )
    return SimpleNamespace(
        warehouse_id=warehouse.id,
        person_id=person.id,
        item_ids=[laptop.id, phone.id],
        grant_id=grant.id,
        access_item_id=vpn.id,
    )


class TestDemobService:
    """Tests for DemobService."""

    async def test_demobilize_returns_items_and_revokes_access(
        self, db_session: AsyncSession, super_admin, leaver
    ):
        document = await DemobService(db_session).demobilize(
            DemobRequest(
                person_id=leaver.person_id,
                item_ids=leaver.item_ids,
                access_ids=[leaver.grant_id],
            ),
            performed_by=super_admin,
        )

        assert document.is_completed is True
        assert document.performed_by == "Asset Admin"
        assert document.performed_by_email == "admin@acmeassets.com"
        assert [i["id"] for i in document.items_returned] == leaver.item_ids
        assert document.accesses_revoked == [
            {"id": leaver.grant_id, "access_item_id": leaver.access_item_id, "name": "VPN"}
        ]

        person = await db_session.get(Person, leaver.person_id, populate_existing=True)
        assert person.status == PersonStatus.INACTIVE.value
        assert person.stock_qty == 0
        for item_id in leaver.item_ids:
            item = await db_session.get(Item, item_id, populate_existing=True)
            assert item.assigned_to_person_id is None
            assert item.current_location_type == LocationType.WAREHOUSE.value
        warehouse = await db_session.get(Warehouse, leaver.warehouse_id, populate_existing=True)
        assert warehouse.stock_qty == 2

        grant = await db_session.get(EmployeeAccess, leaver.grant_id, populate_existing=True)
        assert grant.status == AccessStatus.REVOKED.value
        assert grant.revoked_by == "Asset Admin"

        adjustments = (
            await db_session.execute(
                select(TransferStockAdjustment).where(
                    TransferStockAdjustment.person_id == leaver.person_id
                )
            )
        ).scalars().all()
        assert {a.status for a in adjustments} == {AdjustmentStatus.COMPLETED.value}

    async def test_demobilize_is_all_or_nothing(
        self, db_session: AsyncSession, super_admin, leaver, make_warehouse, make_item
    ):
        stranger_item_id = (await make_item((await make_warehouse("Annex")).id, title="Router")).id

        with pytest.raises(ConflictError):
            await DemobService(db_session).demobilize(
                DemobRequest(
                    person_id=leaver.person_id,
                    item_ids=[*leaver.item_ids, stranger_item_id],
                    access_ids=[leaver.grant_id],
                ),
                performed_by=super_admin,
            )

        person = await db_session.get(Person, leaver.person_id, populate_existing=True)
        assert person.status == PersonStatus.ACTIVE.value
        assert person.stock_qty == 2
        for item_id in leaver.item_ids:
            item = await db_session.get(Item, item_id, populate_existing=True)
            assert item.assigned_to_person_id == leaver.person_id
        grant = await db_session.get(EmployeeAccess, leaver.grant_id, populate_existing=True)
        assert grant.status == AccessStatus.ACTIVE.value
        documents = (await db_session.execute(select(DemobDocument))).scalars().all()
        assert documents == []

    async def test_demobilize_skips_revoked_grants(
        self, db_session: AsyncSession, super_admin, leaver
    ):
        await AccessService(db_session).revoke(leaver.grant_id)

        document = await DemobService(db_session).demobilize(
            DemobRequest(person_id=leaver.person_id, access_ids=[leaver.grant_id]),
            performed_by=super_admin,
        )

        assert document.accesses_revoked == []
        assert document.items_returned == []

    async def test_grant_of_another_person_rejected(
        self, db_session: AsyncSession, super_admin, leaver, make_person
    ):
        other_id = (await make_person("Someone Else")).id

        with pytest.raises(ValidationError):
            await DemobService(db_session).demobilize(
                DemobRequest(person_id=other_id, access_ids=[leaver.grant_id]),
                performed_by=super_admin,
            )

    async def test_unknown_person(self, db_session: AsyncSession, super_admin):
        with pytest.raises(NotFoundError):
            await DemobService(db_session).demobilize(
                DemobRequest(person_id=999), performed_by=super_admin
            )

    async def test_attach_signed_document(self, db_session: AsyncSession, super_admin, leaver):
        service = DemobService(db_session)
        document = await service.demobilize(
            DemobRequest(person_id=leaver.person_id, item_ids=leaver.item_ids),
            performed_by=super_admin,
        )

        updated = await service.update_document(
            document.id,
            DemobDocumentUpdate(signed_document_url="https://files.acmeassets.com/demob-1.pdf"),
            super_admin.id,
        )

        assert updated.signed_document_url == "https://files.acmeassets.com/demob-1.pdf"
        assert updated.is_completed is True
        assert [d.id for d in await service.list_documents(person_id=leaver.person_id)] == [
            document.id
        ]


class TestDemobEndpoints:
    """Tests for demobilization API endpoints."""

    async def test_demobilize_via_api(self, client: AsyncClient, auth_headers: dict, leaver):
        response = await client.post(
            "/api/v1/demob",
            json={
                "person_id": leaver.person_id,
                "item_ids": leaver.item_ids,
                "access_ids": [leaver.grant_id],
                "performed_by_email": "hr@acmeassets.com",
            },
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["person_name"] == "Leaving Person"
        assert data["performed_by_email"] == "hr@acmeassets.com"
        assert len(data["items_returned"]) == 2

        response = await client.get(
            f"/api/v1/people/{leaver.person_id}", headers=auth_headers
        )
        assert response.json()["data"]["status"] == "inactive"

        response = await client.get(
            "/api/v1/demob/documents",
            params={"person_id": leaver.person_id},
            headers=auth_headers,
        )
        assert len(response.json()["data"]) == 1

    async def test_demobilize_foreign_item_returns_409(
        self, client: AsyncClient, auth_headers: dict, leaver, make_warehouse, make_item
    ):
        stranger_item_id = (await make_item((await make_warehouse("Annex")).id, title="Router")).id

        response = await client.post(
            "/api/v1/demob",
            json={"person_id": leaver.person_id, "item_ids": [stranger_item_id]},
            headers=auth_headers,
        )

        assert response.status_code == 409
