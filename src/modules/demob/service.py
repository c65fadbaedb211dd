"""Service for Demobilization module."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.auth.models import User
from src.core.database import atomic, lock_for_update
from src.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.modules.access.models import AccessStatus
from src.modules.access.schemas import RevokeRequest
from src.modules.access.service import AccessService
from src.modules.custody.schemas import ReturnRequest
from src.modules.custody.service import CustodyService
from src.modules.demob.models import DemobDocument
from src.modules.demob.schemas import DemobDocumentUpdate, DemobRequest
from src.modules.people.models import Person, PersonStatus

logger = logging.getLogger(__name__)

DEMOB_NOTE = "Demobilization"


class DemobService:
    """Offboarding of people: returns their items and revokes their accesses in one go."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)
        self.custody = CustodyService(db)
        self.access = AccessService(db)

    async def demobilize(self, data: DemobRequest, performed_by: User) -> DemobDocument:
        """
        Return items, revoke grants, record the document and deactivate the person.

        All or nothing: any failing item or grant rolls the whole operation back.
        Grants that are already revoked are skipped.
        """
        async with atomic(self.db, action=f"demobilize person {data.person_id}"):
            person = (
                await self.db.execute(
                    lock_for_update(select(Person).where(Person.id == data.person_id))
                )
            ).scalar_one_or_none()
            if not person:
                raise NotFoundError("Person", data.person_id)

            items_returned = []
            for item_id in dict.fromkeys(data.item_ids):
                item = await self.custody.enforcer.lock_item(item_id)
                if not item:
                    raise NotFoundError("Item", item_id)
                if item.assigned_to_person_id != person.id:
                    raise ConflictError(
                        f"Item {item_id} is not held by person {person.id}",
                        details={"item_id": item_id, "person_id": person.id},
                    )
                transition = await self.custody.return_item(
                    ReturnRequest(item_id=item_id, notes=DEMOB_NOTE),
                    user_id=performed_by.id,
                    commit=False,
                )
                items_returned.append(
                    {
                        "id": item_id,
                        "title": transition.item.title,
                        "serial_number": transition.item.serial_number,
                        "warehouse_id": transition.item.warehouse_id,
                    }
                )

            accesses_revoked = []
            for grant_id in dict.fromkeys(data.access_ids):
                grant = await self.access.get_grant(grant_id)
                if grant.person_id != person.id:
                    raise ValidationError(
                        f"Access grant {grant_id} does not belong to person {person.id}",
                        field="access_ids",
                    )
                if grant.status == AccessStatus.REVOKED.value:
                    continue
                access_name = grant.access_item.name if grant.access_item else None
                await self.access.revoke(
                    grant_id,
                    RevokeRequest(notes=DEMOB_NOTE),
                    revoked_by=performed_by.full_name,
                    user_id=performed_by.id,
                    commit=False,
                )
                accesses_revoked.append(
                    {"id": grant_id, "access_item_id": grant.access_item_id, "name": access_name}
                )

            person.status = PersonStatus.INACTIVE.value
            document = DemobDocument(
                person_id=person.id,
                performed_by=performed_by.full_name,
                performed_by_email=data.performed_by_email or performed_by.email,
                items_returned=items_returned,
                accesses_revoked=accesses_revoked,
                is_completed=True,
            )
            self.db.add(document)
            await self.db.flush()

            await self.audit.log(
                action=AuditAction.DEMOBILIZE,
                entity_type="Person",
                entity_id=person.id,
                user_id=performed_by.id,
                entity_identifier=person.title,
                new_values={
                    "status": PersonStatus.INACTIVE.value,
                    "items_returned": [i["id"] for i in items_returned],
                    "accesses_revoked": [a["id"] for a in accesses_revoked],
                    "demob_document_id": document.id,
                },
            )

        logger.info(
            "Demobilized person %s: %s item(s) returned, %s access(es) revoked",
            person.id,
            len(items_returned),
            len(accesses_revoked),
        )
        return await self.get_document(document.id)

    async def get_document(self, document_id: int) -> DemobDocument:
        result = await self.db.execute(
            select(DemobDocument)
            .options(selectinload(DemobDocument.person))
            .where(DemobDocument.id == document_id)
            .execution_options(populate_existing=True)
        )
        document = result.scalar_one_or_none()
        if not document:
            raise NotFoundError("DemobDocument", document_id)
        return document

    async def list_documents(self, person_id: int | None = None) -> list[DemobDocument]:
        query = select(DemobDocument).options(selectinload(DemobDocument.person))
        if person_id is not None:
            query = query.where(DemobDocument.person_id == person_id)
        query = query.order_by(DemobDocument.created_at.desc(), DemobDocument.id.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_document(
        self, document_id: int, data: DemobDocumentUpdate, updated_by_id: int
    ) -> DemobDocument:
        """Attach the signed document or change the completion flag."""
        document = await self.get_document(document_id)
        values = data.model_dump(exclude_unset=True)
        if values.get("is_completed") is None:
            values.pop("is_completed", None)

        for field, value in values.items():
            setattr(document, field, value)

        if values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="DemobDocument",
                entity_id=document.id,
                user_id=updated_by_id,
                new_values=values,
            )
            await self.db.commit()
        return await self.get_document(document_id)
