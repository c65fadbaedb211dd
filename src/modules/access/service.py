"""Service for Access module: access reference data and grant lifecycle.

A grant moves Active -> Revoked exactly once. Re-granting after a revoke
creates a new record, so the history of a person is the list of all rows.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.database import atomic, lock_for_update
from src.core.exceptions import ConflictError, DuplicateError, NotFoundError, ValidationError
from src.modules.access.models import AccessCategory, AccessItem, AccessStatus, EmployeeAccess
from src.modules.access.schemas import (
    AccessCategoryCreate,
    AccessCategoryUpdate,
    AccessItemCreate,
    AccessItemUpdate,
    GrantRequest,
    RevokeRequest,
)
from src.modules.people.models import Person

logger = logging.getLogger(__name__)


class AccessService:
    """Service for access categories, access items and employee grants."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # --- Access categories ---

    async def create_category(self, data: AccessCategoryCreate, created_by_id: int) -> AccessCategory:
        existing = await self.db.execute(
            select(AccessCategory.id).where(AccessCategory.title == data.title)
        )
        if existing.scalar_one_or_none() is not None:
            raise DuplicateError("AccessCategory", "title", data.title)

        category = AccessCategory(title=data.title, description=data.description)
        self.db.add(category)
        await self.db.flush()
        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="AccessCategory",
            entity_id=category.id,
            user_id=created_by_id,
            entity_identifier=category.title,
        )
        await self.db.commit()
        return await self.get_category(category.id)

    async def get_category(self, category_id: int) -> AccessCategory:
        result = await self.db.execute(
            select(AccessCategory)
            .options(selectinload(AccessCategory.access_items))
            .where(AccessCategory.id == category_id)
            .execution_options(populate_existing=True)
        )
        category = result.scalar_one_or_none()
        if not category:
            raise NotFoundError("AccessCategory", category_id)
        return category

    async def list_categories(self) -> list[AccessCategory]:
        """All categories with their access items."""
        result = await self.db.execute(
            select(AccessCategory)
            .options(selectinload(AccessCategory.access_items))
            .order_by(AccessCategory.title)
        )
        return list(result.scalars().all())

    async def update_category(
        self, category_id: int, data: AccessCategoryUpdate, updated_by_id: int
    ) -> AccessCategory:
        category = await self.get_category(category_id)
        values = data.model_dump(exclude_unset=True)
        if values.get("title") and values["title"] != category.title:
            existing = await self.db.execute(
                select(AccessCategory.id).where(AccessCategory.title == values["title"])
            )
            if existing.scalar_one_or_none() is not None:
                raise DuplicateError("AccessCategory", "title", values["title"])
            category.title = values["title"]
        if "description" in values:
            category.description = values["description"]

        await self.audit.log(
            action=AuditAction.UPDATE,
            entity_type="AccessCategory",
            entity_id=category.id,
            user_id=updated_by_id,
            entity_identifier=category.title,
            new_values=values,
        )
        await self.db.commit()
        return await self.get_category(category_id)

    async def delete_category(self, category_id: int, deleted_by_id: int) -> None:
        """Delete a category that has no access items."""
        category = await self.get_category(category_id)
        if category.access_items:
            raise ConflictError(
                f"Access category '{category.title}' still has {len(category.access_items)} item(s)",
                details={"category_id": category_id},
            )
        await self.audit.log(
            action=AuditAction.DELETE,
            entity_type="AccessCategory",
            entity_id=category.id,
            user_id=deleted_by_id,
            entity_identifier=category.title,
        )
        await self.db.delete(category)
        await self.db.commit()

    # --- Access items ---

    async def create_access_item(self, data: AccessItemCreate, created_by_id: int) -> AccessItem:
        await self.get_category(data.category_id)
        access_item = AccessItem(**data.model_dump())
        self.db.add(access_item)
        await self.db.flush()
        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="AccessItem",
            entity_id=access_item.id,
            user_id=created_by_id,
            entity_identifier=access_item.name,
        )
        await self.db.commit()
        return access_item

    async def get_access_item(self, access_item_id: int) -> AccessItem:
        result = await self.db.execute(select(AccessItem).where(AccessItem.id == access_item_id))
        access_item = result.scalar_one_or_none()
        if not access_item:
            raise NotFoundError("AccessItem", access_item_id)
        return access_item

    async def list_access_items(self, category_id: int | None = None) -> list[AccessItem]:
        query = select(AccessItem).order_by(AccessItem.name)
        if category_id is not None:
            query = query.where(AccessItem.category_id == category_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_access_item(
        self, access_item_id: int, data: AccessItemUpdate, updated_by_id: int
    ) -> AccessItem:
        access_item = await self.get_access_item(access_item_id)
        values = data.model_dump(exclude_unset=True)
        if values.get("category_id") is not None:
            await self.get_category(values["category_id"])

        for field, value in values.items():
            if value is None and field in ("name", "category_id"):
                continue
            setattr(access_item, field, value)

        await self.audit.log(
            action=AuditAction.UPDATE,
            entity_type="AccessItem",
            entity_id=access_item.id,
            user_id=updated_by_id,
            entity_identifier=access_item.name,
            new_values=values,
        )
        await self.db.commit()
        return access_item

    async def delete_access_item(self, access_item_id: int, deleted_by_id: int) -> None:
        """Delete an access item that was never granted."""
        access_item = await self.get_access_item(access_item_id)
        grants = (
            await self.db.execute(
                select(func.count())
                .select_from(EmployeeAccess)
                .where(EmployeeAccess.access_item_id == access_item_id)
            )
        ).scalar() or 0
        if grants:
            raise ConflictError(
                f"Access item '{access_item.name}' has {grants} grant(s)",
                details={"access_item_id": access_item_id, "grants": grants},
            )
        await self.audit.log(
            action=AuditAction.DELETE,
            entity_type="AccessItem",
            entity_id=access_item.id,
            user_id=deleted_by_id,
            entity_identifier=access_item.name,
        )
        await self.db.delete(access_item)
        await self.db.commit()

    # --- Grants ---

    async def grant(
        self,
        data: GrantRequest,
        granted_by: str | None = None,
        user_id: int | None = None,
    ) -> EmployeeAccess:
        """Grant an access item to a person. One active grant per (person, item)."""
        async with atomic(self.db, action=f"grant access {data.access_item_id} to person {data.person_id}"):
            # Person row lock serializes grants of the same person
            person = (
                await self.db.execute(
                    lock_for_update(select(Person).where(Person.id == data.person_id))
                )
            ).scalar_one_or_none()
            if not person:
                raise NotFoundError("Person", data.person_id)
            if not person.is_active:
                raise ValidationError(
                    f"Person '{person.title}' is inactive", field="person_id"
                )
            access_item = await self.get_access_item(data.access_item_id)

            existing = await self.db.execute(
                select(EmployeeAccess.id)
                .where(EmployeeAccess.person_id == person.id)
                .where(EmployeeAccess.access_item_id == access_item.id)
                .where(EmployeeAccess.status == AccessStatus.ACTIVE.value)
            )
            active_id = existing.scalars().first()
            if active_id is not None:
                raise ConflictError(
                    f"Person {person.id} already has active access '{access_item.name}'",
                    details={"grant_id": active_id},
                )

            grant = EmployeeAccess(
                person_id=person.id,
                access_item_id=access_item.id,
                status=AccessStatus.ACTIVE.value,
                granted_date=datetime.now(timezone.utc),
                granted_by=granted_by,
                notes=data.notes,
            )
            self.db.add(grant)
            await self.db.flush()

            await self.audit.log(
                action=AuditAction.GRANT_ACCESS,
                entity_type="EmployeeAccess",
                entity_id=grant.id,
                user_id=user_id,
                entity_identifier=f"{person.title}: {access_item.name}",
                new_values={"person_id": person.id, "access_item_id": access_item.id},
            )

        logger.info("Granted access %s to person %s", access_item.id, person.id)
        return await self.get_grant(grant.id)

    async def revoke(
        self,
        grant_id: int,
        data: RevokeRequest | None = None,
        revoked_by: str | None = None,
        user_id: int | None = None,
        commit: bool = True,
    ) -> EmployeeAccess:
        """Revoke an active grant. The revoke date is stamped once and never moved."""
        async with atomic(self.db, action=f"revoke grant {grant_id}", commit=commit):
            grant = (
                await self.db.execute(
                    lock_for_update(select(EmployeeAccess).where(EmployeeAccess.id == grant_id))
                )
            ).scalar_one_or_none()
            if not grant:
                raise NotFoundError("EmployeeAccess", grant_id)
            if grant.status == AccessStatus.REVOKED.value:
                raise ConflictError(
                    f"Grant {grant_id} is already revoked",
                    details={"grant_id": grant_id, "revoked_date": str(grant.revoked_date)},
                )

            grant.status = AccessStatus.REVOKED.value
            grant.revoked_date = datetime.now(timezone.utc)
            grant.revoked_by = revoked_by
            if data is not None and data.notes:
                grant.notes = data.notes
            await self.db.flush()

            await self.audit.log(
                action=AuditAction.REVOKE_ACCESS,
                entity_type="EmployeeAccess",
                entity_id=grant.id,
                user_id=user_id,
                old_values={"status": AccessStatus.ACTIVE.value},
                new_values={"status": AccessStatus.REVOKED.value},
            )

        logger.info("Revoked grant %s of person %s", grant.id, grant.person_id)
        return grant

    async def get_grant(self, grant_id: int) -> EmployeeAccess:
        result = await self.db.execute(
            select(EmployeeAccess)
            .options(selectinload(EmployeeAccess.access_item), selectinload(EmployeeAccess.person))
            .where(EmployeeAccess.id == grant_id)
            .execution_options(populate_existing=True)
        )
        grant = result.scalar_one_or_none()
        if not grant:
            raise NotFoundError("EmployeeAccess", grant_id)
        return grant

    async def _ensure_person(self, person_id: int) -> None:
        exists = await self.db.execute(select(Person.id).where(Person.id == person_id))
        if exists.scalar_one_or_none() is None:
            raise NotFoundError("Person", person_id)

    async def list_active_for_person(self, person_id: int) -> list[EmployeeAccess]:
        await self._ensure_person(person_id)
        result = await self.db.execute(
            select(EmployeeAccess)
            .options(selectinload(EmployeeAccess.access_item), selectinload(EmployeeAccess.person))
            .where(EmployeeAccess.person_id == person_id)
            .where(EmployeeAccess.status == AccessStatus.ACTIVE.value)
            .order_by(EmployeeAccess.granted_date.desc(), EmployeeAccess.id.desc())
        )
        return list(result.scalars().all())

    async def list_history_for_person(self, person_id: int) -> list[EmployeeAccess]:
        """Every grant of a person, active and revoked, newest first."""
        await self._ensure_person(person_id)
        result = await self.db.execute(
            select(EmployeeAccess)
            .options(selectinload(EmployeeAccess.access_item), selectinload(EmployeeAccess.person))
            .where(EmployeeAccess.person_id == person_id)
            .order_by(EmployeeAccess.granted_date.desc(), EmployeeAccess.id.desc())
        )
        return list(result.scalars().all())

    async def list_grants(
        self,
        person_id: int | None = None,
        access_item_id: int | None = None,
        status: AccessStatus | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[EmployeeAccess], int]:
        query = select(EmployeeAccess).options(
            selectinload(EmployeeAccess.access_item), selectinload(EmployeeAccess.person)
        )
        if person_id is not None:
            query = query.where(EmployeeAccess.person_id == person_id)
        if access_item_id is not None:
            query = query.where(EmployeeAccess.access_item_id == access_item_id)
        if status is not None:
            query = query.where(EmployeeAccess.status == status.value)

        total = (
            await self.db.execute(select(func.count()).select_from(query.subquery()))
        ).scalar() or 0

        query = query.order_by(EmployeeAccess.granted_date.desc(), EmployeeAccess.id.desc())
        query = query.offset((page - 1) * limit).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total
