"""Tests for Access module."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.models import User
from src.core.exceptions import ConflictError, DuplicateError, NotFoundError, ValidationError
from src.modules.access.models import AccessStatus, EmployeeAccess
from src.modules.access.schemas import (
    AccessCategoryCreate,
    AccessItemCreate,
    GrantRequest,
    RevokeRequest,
)
from src.modules.access.service import AccessService
from src.modules.people.models import PersonStatus


class TestAccessService:
    """Tests for AccessService."""

    async def _create_access_item(
        self, db_session: AsyncSession, admin: User, name: str = "VPN"
    ) -> int:
        service = AccessService(db_session)
        category = await service.create_category(
            AccessCategoryCreate(title=f"Network {name}"), created_by_id=admin.id
        )
        access_item = await service.create_access_item(
            AccessItemCreate(name=name, category_id=category.id), created_by_id=admin.id
        )
        return access_item.id

    async def test_create_category_duplicate_title(self, db_session: AsyncSession, super_admin):
        service = AccessService(db_session)
        await service.create_category(AccessCategoryCreate(title="Email"), super_admin.id)

        with pytest.raises(DuplicateError):
            await service.create_category(AccessCategoryCreate(title="Email"), super_admin.id)

    async def test_delete_category_with_items_rejected(
        self, db_session: AsyncSession, super_admin
    ):
        service = AccessService(db_session)
        access_item_id = await self._create_access_item(db_session, super_admin)
        access_item = await service.get_access_item(access_item_id)

        with pytest.raises(ConflictError):
            await service.delete_category(access_item.category_id, super_admin.id)

    async def test_grant_and_revoke(self, db_session: AsyncSession, super_admin, make_person):
        person = await make_person()
        access_item_id = await self._create_access_item(db_session, super_admin)
        service = AccessService(db_session)

        grant = await service.grant(
            GrantRequest(person_id=person.id, access_item_id=access_item_id),
            granted_by="Asset Admin",
            user_id=super_admin.id,
        )
        assert grant.status == AccessStatus.ACTIVE.value
        assert grant.granted_date is not None
        assert grant.revoked_date is None
        assert grant.granted_by == "Asset Admin"
        assert grant.access_item.name == "VPN"

        revoked = await service.revoke(
            grant.id, RevokeRequest(notes="Left project"), revoked_by="Asset Admin"
        )
        assert revoked.status == AccessStatus.REVOKED.value
        assert revoked.revoked_date is not None
        assert revoked.revoked_by == "Asset Admin"
        assert revoked.notes == "Left project"

    async def test_duplicate_active_grant_rejected(
        self, db_session: AsyncSession, super_admin, make_person
    ):
        person = await make_person()
        person_id = person.id
        access_item_id = await self._create_access_item(db_session, super_admin)
        service = AccessService(db_session)
        await service.grant(GrantRequest(person_id=person_id, access_item_id=access_item_id))

        with pytest.raises(ConflictError):
            await service.grant(GrantRequest(person_id=person_id, access_item_id=access_item_id))

        active = await service.list_active_for_person(person_id)
        assert len(active) == 1

    async def test_revoke_twice_keeps_first_revoke_date(
        self, db_session: AsyncSession, super_admin, make_person
    ):
        person = await make_person()
        access_item_id = await self._create_access_item(db_session, super_admin)
        service = AccessService(db_session)
        grant = await service.grant(GrantRequest(person_id=person.id, access_item_id=access_item_id))
        grant_id = grant.id
        await service.revoke(grant_id)
        first_revoked = (await service.get_grant(grant_id)).revoked_date

        with pytest.raises(ConflictError):
            await service.revoke(grant_id)

        stored = await db_session.get(EmployeeAccess, grant_id, populate_existing=True)
        assert stored.revoked_date == first_revoked
        assert stored.status == AccessStatus.REVOKED.value

    async def test_regrant_after_revoke_creates_new_record(
        self, db_session: AsyncSession, super_admin, make_person
    ):
        person = await make_person()
        person_id = person.id
        access_item_id = await self._create_access_item(db_session, super_admin)
        service = AccessService(db_session)
        first = await service.grant(GrantRequest(person_id=person_id, access_item_id=access_item_id))
        await service.revoke(first.id)

        second = await service.grant(
            GrantRequest(person_id=person_id, access_item_id=access_item_id)
        )

        assert second.id != first.id
        history = await service.list_history_for_person(person_id)
        assert {g.id for g in history} == {first.id, second.id}
        active = await service.list_active_for_person(person_id)
        assert [g.id for g in active] == [second.id]

    async def test_grant_to_inactive_person_rejected(
        self, db_session: AsyncSession, super_admin, make_person
    ):
        person = await make_person(status=PersonStatus.INACTIVE)
        person_id = person.id
        access_item_id = await self._create_access_item(db_session, super_admin)

        with pytest.raises(ValidationError):
            await AccessService(db_session).grant(
                GrantRequest(person_id=person_id, access_item_id=access_item_id)
            )

    async def test_grant_unknown_person_or_access_item(
        self, db_session: AsyncSession, super_admin, make_person
    ):
        person = await make_person()
        person_id = person.id
        access_item_id = await self._create_access_item(db_session, super_admin)
        service = AccessService(db_session)

        with pytest.raises(NotFoundError):
            await service.grant(GrantRequest(person_id=999, access_item_id=access_item_id))
        with pytest.raises(NotFoundError):
            await service.grant(GrantRequest(person_id=person_id, access_item_id=999))

    async def test_history_of_unknown_person(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await AccessService(db_session).list_history_for_person(999)

    async def test_delete_access_item_with_grants_rejected(
        self, db_session: AsyncSession, super_admin, make_person
    ):
        person = await make_person()
        access_item_id = await self._create_access_item(db_session, super_admin)
        service = AccessService(db_session)
        await service.grant(GrantRequest(person_id=person.id, access_item_id=access_item_id))

        with pytest.raises(ConflictError):
            await service.delete_access_item(access_item_id, super_admin.id)


class TestAccessEndpoints:
    """Tests for access API endpoints."""

    async def _create_access_item(self, client: AsyncClient, headers: dict) -> int:
        response = await client.post(
            "/api/v1/access/categories",
            json={"title": "Applications"},
            headers=headers,
        )
        assert response.status_code == 201
        category_id = response.json()["data"]["id"]

        response = await client.post(
            "/api/v1/access/items",
            json={"name": "ERP", "category_id": category_id},
            headers=headers,
        )
        assert response.status_code == 201
        return response.json()["data"]["id"]

    async def test_grant_revoke_flow(self, client: AsyncClient, auth_headers: dict, make_person):
        person_id = (await make_person()).id
        access_item_id = await self._create_access_item(client, auth_headers)

        response = await client.post(
            "/api/v1/access/grants",
            json={"person_id": person_id, "access_item_id": access_item_id},
            headers=auth_headers,
        )
        assert response.status_code == 201
        grant = response.json()["data"]
        assert grant["status"] == "active"
        assert grant["granted_by"] == "Asset Admin"
        assert grant["access_item_name"] == "ERP"

        response = await client.post(
            "/api/v1/access/grants",
            json={"person_id": person_id, "access_item_id": access_item_id},
            headers=auth_headers,
        )
        assert response.status_code == 409

        response = await client.post(
            f"/api/v1/access/grants/{grant['id']}/revoke",
            json={"notes": "Contract ended"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        revoked = response.json()["data"]
        assert revoked["status"] == "revoked"
        assert revoked["revoked_date"] is not None

        response = await client.post(
            f"/api/v1/access/grants/{grant['id']}/revoke", headers=auth_headers
        )
        assert response.status_code == 409

        response = await client.get(
            f"/api/v1/access/people/{person_id}/active", headers=auth_headers
        )
        assert response.json()["data"] == []

        response = await client.get(
            f"/api/v1/access/people/{person_id}/history", headers=auth_headers
        )
        assert len(response.json()["data"]) == 1

    async def test_list_grants_filtered_by_status(
        self, client: AsyncClient, auth_headers: dict, make_person
    ):
        person_id = (await make_person()).id
        access_item_id = await self._create_access_item(client, auth_headers)
        await client.post(
            "/api/v1/access/grants",
            json={"person_id": person_id, "access_item_id": access_item_id},
            headers=auth_headers,
        )

        response = await client.get(
            "/api/v1/access/grants", params={"status": "active"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["total"] == 1

        response = await client.get(
            "/api/v1/access/grants", params={"status": "revoked"}, headers=auth_headers
        )
        assert response.json()["data"]["total"] == 0

    async def test_list_categories_includes_items(self, client: AsyncClient, auth_headers: dict):
        await self._create_access_item(client, auth_headers)

        response = await client.get("/api/v1/access/categories", headers=auth_headers)

        assert response.status_code == 200
        categories = response.json()["data"]
        assert categories[0]["title"] == "Applications"
        assert categories[0]["access_items"][0]["name"] == "ERP"
