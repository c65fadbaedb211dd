"""Service for People module."""

from datetime import date

from pydantic import BaseModel, ConfigDict
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.exceptions import ConflictError, NotFoundError
from src.modules.access.models import AccessStatus, EmployeeAccess
from src.modules.custody.models import AdjustmentStatus, TransferStockAdjustment
from src.modules.demob.models import DemobDocument
from src.modules.items.models import Item
from src.modules.offboarding.models import OPEN_STATUSES, OffboardingTask
from src.modules.people.models import Person, PersonStatus
from src.modules.people.schemas import PersonCreate, PersonUpdate


class PersonProfile(BaseModel):
    """A person with everything they currently hold or owe."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    person: Person
    items: list[Item]
    active_accesses: list[EmployeeAccess]
    active_adjustments: list[TransferStockAdjustment]
    demob_documents: list[DemobDocument]
    open_tasks: list[OffboardingTask]


class PersonService:
    """Service for managing people (custodians)."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def create_person(self, data: PersonCreate, created_by_id: int) -> Person:
        person = Person(**data.model_dump(), stock_qty=0)
        person.status = data.status.value
        self.db.add(person)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Person",
            entity_id=person.id,
            user_id=created_by_id,
            entity_identifier=person.title,
            new_values={"title": person.title, "email": person.email},
        )
        await self.db.commit()
        return person

    async def get_person_by_id(self, person_id: int) -> Person:
        result = await self.db.execute(select(Person).where(Person.id == person_id))
        person = result.scalar_one_or_none()
        if not person:
            raise NotFoundError("Person", person_id)
        return person

    async def list_people(
        self,
        search: str | None = None,
        status: PersonStatus | None = None,
        department: str | None = None,
        contract_ends_before: date | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[Person], int]:
        query = select(Person)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(Person.title.ilike(pattern), Person.email.ilike(pattern)))
        if status is not None:
            query = query.where(Person.status == status.value)
        if department:
            query = query.where(Person.department == department)
        if contract_ends_before is not None:
            query = query.where(Person.contract_end_date.is_not(None)).where(
                Person.contract_end_date <= contract_ends_before
            )

        total = (
            await self.db.execute(select(func.count()).select_from(query.subquery()))
        ).scalar() or 0

        query = query.order_by(Person.title, Person.id).offset((page - 1) * limit).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def update_person(self, person_id: int, data: PersonUpdate, updated_by_id: int) -> Person:
        person = await self.get_person_by_id(person_id)

        old_values = {}
        new_values = {}
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("title", "status"):
                continue
            if isinstance(value, PersonStatus):
                value = value.value
            current = getattr(person, field)
            if current != value:
                old_values[field] = str(current) if current is not None else None
                new_values[field] = str(value) if value is not None else None
                setattr(person, field, value)

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Person",
                entity_id=person.id,
                user_id=updated_by_id,
                entity_identifier=person.title,
                old_values=old_values,
                new_values=new_values,
            )
            await self.db.commit()
        return person

    async def _count(self, model, *conditions) -> int:
        result = await self.db.execute(select(func.count()).select_from(model).where(*conditions))
        return result.scalar() or 0

    async def delete_person(self, person_id: int, deleted_by_id: int) -> None:
        """Delete a person with no custody or access records.

        People with history are kept and should be set inactive instead.
        """
        person = await self.get_person_by_id(person_id)

        held = await self._count(Item, Item.assigned_to_person_id == person_id)
        active_grants = await self._count(
            EmployeeAccess,
            EmployeeAccess.person_id == person_id,
            EmployeeAccess.status == AccessStatus.ACTIVE.value,
        )
        if held or active_grants:
            raise ConflictError(
                f"Person '{person.title}' still holds {held} item(s) and {active_grants} active access(es)",
                details={"items": held, "active_accesses": active_grants},
            )

        history = (
            await self._count(
                TransferStockAdjustment,
                or_(
                    TransferStockAdjustment.person_id == person_id,
                    TransferStockAdjustment.from_person_id == person_id,
                ),
            )
            + await self._count(EmployeeAccess, EmployeeAccess.person_id == person_id)
            + await self._count(DemobDocument, DemobDocument.person_id == person_id)
            + await self._count(OffboardingTask, OffboardingTask.person_id == person_id)
        )
        if history:
            raise ConflictError(
                f"Person '{person.title}' has custody or access history; set the status to inactive instead",
                details={"records": history},
            )

        await self.audit.log(
            action=AuditAction.DELETE,
            entity_type="Person",
            entity_id=person.id,
            user_id=deleted_by_id,
            entity_identifier=person.title,
        )
        await self.db.delete(person)
        await self.db.commit()

    async def get_profile(self, person_id: int) -> PersonProfile:
        """Person with held items, active accesses, active adjustments, demob documents and open offboarding tasks."""
        person = await self.get_person_by_id(person_id)

        items = await self.db.execute(
            select(Item)
            .where(Item.assigned_to_person_id == person_id)
            .order_by(Item.title, Item.id)
        )
        accesses = await self.db.execute(
            select(EmployeeAccess)
            .options(selectinload(EmployeeAccess.access_item), selectinload(EmployeeAccess.person))
            .where(EmployeeAccess.person_id == person_id)
            .where(EmployeeAccess.status == AccessStatus.ACTIVE.value)
            .order_by(EmployeeAccess.granted_date.desc(), EmployeeAccess.id.desc())
        )
        adjustments = await self.db.execute(
            select(TransferStockAdjustment)
            .options(
                selectinload(TransferStockAdjustment.item),
                selectinload(TransferStockAdjustment.person),
            )
            .where(TransferStockAdjustment.person_id == person_id)
            .where(TransferStockAdjustment.status == AdjustmentStatus.ACTIVE.value)
            .order_by(TransferStockAdjustment.created_at.desc(), TransferStockAdjustment.id.desc())
        )
        documents = await self.db.execute(
            select(DemobDocument)
            .where(DemobDocument.person_id == person_id)
            .order_by(DemobDocument.created_at.desc(), DemobDocument.id.desc())
        )
        tasks = await self.db.execute(
            select(OffboardingTask)
            .where(OffboardingTask.person_id == person_id)
            .where(OffboardingTask.status.in_([s.value for s in OPEN_STATUSES]))
            .order_by(OffboardingTask.created_at.desc(), OffboardingTask.id.desc())
        )

        return PersonProfile(
            person=person,
            items=list(items.scalars().all()),
            active_accesses=list(accesses.scalars().all()),
            active_adjustments=list(adjustments.scalars().all()),
            demob_documents=list(documents.scalars().all()),
            open_tasks=list(tasks.scalars().all()),
        )
