"""Service for Offboarding module."""

import logging
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.service import AuditAction, AuditService
from src.core.auth.models import User
from src.core.database import atomic, lock_for_update
from src.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.modules.access.models import AccessStatus
from src.modules.access.schemas import RevokeRequest
from src.modules.access.service import AccessService
from src.modules.custody.schemas import ReturnRequest
from src.modules.custody.service import CustodyService
from src.modules.items.models import Item
from src.modules.offboarding.models import (
    OPEN_STATUSES,
    TRANSITIONS,
    OffboardingTask,
    TaskPriority,
    TaskStatus,
    TaskType,
)
from src.modules.offboarding.schemas import TaskCreate, TaskGenerateRequest, TaskStatusUpdate
from src.modules.people.models import Person

logger = logging.getLogger(__name__)


class GenerateResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    created: list[OffboardingTask] = []
    skipped: int = 0


class OffboardingService:
    """
    Leaver checklists.

    Tasks drive the custody and access workflows: marking an item collection
    task `asset_collected` returns the item to a warehouse, completing an
    access revocation task revokes the grant if it is still active.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)
        self.custody = CustodyService(db)
        self.access = AccessService(db)

    async def _get_person(self, person_id: int) -> Person:
        person = await self.db.get(Person, person_id)
        if not person:
            raise NotFoundError("Person", person_id)
        return person

    async def _open_task_exists(
        self, item_id: int | None = None, access_grant_id: int | None = None
    ) -> bool:
        query = select(OffboardingTask.id).where(
            OffboardingTask.status.in_([s.value for s in OPEN_STATUSES])
        )
        if item_id is not None:
            query = query.where(OffboardingTask.item_id == item_id)
        if access_grant_id is not None:
            query = query.where(OffboardingTask.access_grant_id == access_grant_id)
        return (await self.db.execute(query.limit(1))).scalar_one_or_none() is not None

    async def _check_target(self, data: TaskCreate) -> None:
        """The task's item or grant must belong to the person and have no other open task."""
        if data.task_type == TaskType.ITEM_COLLECTION:
            if data.item_id is None:
                raise ValidationError("Item collection task needs item_id", field="item_id")
            item = await self.db.get(Item, data.item_id)
            if not item:
                raise NotFoundError("Item", data.item_id)
            if item.assigned_to_person_id != data.person_id:
                raise ConflictError(
                    f"Item {item.id} is not held by person {data.person_id}",
                    details={"item_id": item.id, "person_id": data.person_id},
                )
            if await self._open_task_exists(item_id=item.id):
                raise ConflictError(
                    f"Item {item.id} already has an open offboarding task",
                    details={"item_id": item.id},
                )

        elif data.task_type == TaskType.ACCESS_REVOCATION:
            if data.access_grant_id is None:
                raise ValidationError(
                    "Access revocation task needs access_grant_id", field="access_grant_id"
                )
            grant = await self.access.get_grant(data.access_grant_id)
            if grant.person_id != data.person_id:
                raise ValidationError(
                    f"Access grant {grant.id} does not belong to person {data.person_id}",
                    field="access_grant_id",
                )
            if grant.status != AccessStatus.ACTIVE.value:
                raise ConflictError(f"Grant {grant.id} is already revoked")
            if await self._open_task_exists(access_grant_id=grant.id):
                raise ConflictError(
                    f"Grant {grant.id} already has an open offboarding task",
                    details={"access_grant_id": grant.id},
                )

    async def create_task(self, data: TaskCreate, created_by_id: int | None) -> OffboardingTask:
        await self._get_person(data.person_id)
        await self._check_target(data)

        task = OffboardingTask(
            person_id=data.person_id,
            task_type=data.task_type.value,
            title=data.title,
            description=data.description,
            priority=data.priority.value,
            due_date=data.due_date,
            assigned_to=data.assigned_to,
            item_id=data.item_id if data.task_type == TaskType.ITEM_COLLECTION else None,
            access_grant_id=(
                data.access_grant_id if data.task_type == TaskType.ACCESS_REVOCATION else None
            ),
            status=TaskStatus.PENDING.value,
            created_by_id=created_by_id,
        )
        async with atomic(self.db, action=f"create offboarding task for person {data.person_id}"):
            self.db.add(task)
            await self.db.flush()
            await self.audit.log(
                action=AuditAction.CREATE,
                entity_type="OffboardingTask",
                entity_id=task.id,
                user_id=created_by_id,
                entity_identifier=task.title,
                new_values={"person_id": task.person_id, "task_type": task.task_type},
            )
        return task

    async def generate_for_person(
        self, person_id: int, data: TaskGenerateRequest, created_by_id: int | None
    ) -> GenerateResult:
        """One high-priority task per held item and active grant; existing open tasks are skipped."""
        person = await self._get_person(person_id)
        held_items = (
            await self.db.execute(
                select(Item).where(Item.assigned_to_person_id == person_id).order_by(Item.id)
            )
        ).scalars().all()
        grants = await self.access.list_active_for_person(person_id)

        result = GenerateResult()
        async with atomic(self.db, action=f"generate offboarding tasks for person {person_id}"):
            for item in held_items:
                if await self._open_task_exists(item_id=item.id):
                    result.skipped += 1
                    continue
                result.created.append(
                    self._new_generated_task(
                        person_id,
                        TaskType.ITEM_COLLECTION,
                        title=f"Collect {item.title}",
                        description=f"Collect item: {item.serial_number or item.id}",
                        data=data,
                        created_by_id=created_by_id,
                        item_id=item.id,
                    )
                )
            for grant in grants:
                if await self._open_task_exists(access_grant_id=grant.id):
                    result.skipped += 1
                    continue
                name = grant.access_item.name if grant.access_item else f"grant {grant.id}"
                result.created.append(
                    self._new_generated_task(
                        person_id,
                        TaskType.ACCESS_REVOCATION,
                        title=f"Revoke {name} access",
                        description=f"Revoke {name} access for {person.title}",
                        data=data,
                        created_by_id=created_by_id,
                        access_grant_id=grant.id,
                    )
                )

            self.db.add_all(result.created)
            await self.db.flush()
            for task in result.created:
                await self.audit.log(
                    action=AuditAction.CREATE,
                    entity_type="OffboardingTask",
                    entity_id=task.id,
                    user_id=created_by_id,
                    entity_identifier=task.title,
                    new_values={"person_id": person_id, "task_type": task.task_type},
                    comment="Generated",
                )

        logger.info(
            "Generated %s offboarding task(s) for person %s, %s skipped",
            len(result.created),
            person_id,
            result.skipped,
        )
        return result

    @staticmethod
    def _new_generated_task(
        person_id: int,
        task_type: TaskType,
        title: str,
        description: str,
        data: TaskGenerateRequest,
        created_by_id: int | None,
        item_id: int | None = None,
        access_grant_id: int | None = None,
    ) -> OffboardingTask:
        return OffboardingTask(
            person_id=person_id,
            task_type=task_type.value,
            title=title,
            description=description,
            priority=TaskPriority.HIGH.value,
            due_date=data.due_date,
            assigned_to=data.assigned_to,
            item_id=item_id,
            access_grant_id=access_grant_id,
            status=TaskStatus.PENDING.value,
            created_by_id=created_by_id,
        )

    async def get_task(self, task_id: int) -> OffboardingTask:
        task = await self.db.get(OffboardingTask, task_id, populate_existing=True)
        if not task:
            raise NotFoundError("OffboardingTask", task_id)
        return task

    async def list_tasks(
        self,
        person_id: int | None = None,
        status: TaskStatus | None = None,
        task_type: TaskType | None = None,
        open_only: bool = False,
    ) -> list[OffboardingTask]:
        query = select(OffboardingTask)
        if person_id is not None:
            query = query.where(OffboardingTask.person_id == person_id)
        if status is not None:
            query = query.where(OffboardingTask.status == status.value)
        if task_type is not None:
            query = query.where(OffboardingTask.task_type == task_type.value)
        if open_only:
            query = query.where(OffboardingTask.status.in_([s.value for s in OPEN_STATUSES]))
        query = query.order_by(OffboardingTask.created_at.desc(), OffboardingTask.id.desc())
        return list((await self.db.execute(query)).scalars().all())

    async def update_status(
        self, task_id: int, data: TaskStatusUpdate, performed_by: User
    ) -> OffboardingTask:
        """
        Move a task along its workflow and apply the custody/access side effect.

        The side effect and the status change commit together.
        """
        async with atomic(self.db, action=f"update offboarding task {task_id}"):
            task = (
                await self.db.execute(
                    lock_for_update(select(OffboardingTask).where(OffboardingTask.id == task_id))
                )
            ).scalar_one_or_none()
            if not task:
                raise NotFoundError("OffboardingTask", task_id)

            current = TaskStatus(task.status)
            allowed = TRANSITIONS[TaskType(task.task_type)].get(current, set())
            if data.status not in allowed:
                raise ConflictError(
                    f"Cannot move {task.task_type} task from {current.value} to {data.status.value}",
                    details={"task_id": task.id, "status": current.value},
                )

            side_effect: dict = {}
            if data.status == TaskStatus.ASSET_COLLECTED:
                side_effect = await self._collect_item(task, data, performed_by)
            elif (
                data.status == TaskStatus.COMPLETED
                and task.task_type == TaskType.ACCESS_REVOCATION.value
            ):
                side_effect = await self._revoke_grant(task, performed_by)

            task.status = data.status.value
            if data.notes:
                task.notes = data.notes
            if data.status == TaskStatus.COMPLETED:
                task.completed_at = datetime.now(timezone.utc)
            await self.db.flush()

            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="OffboardingTask",
                entity_id=task.id,
                user_id=performed_by.id,
                entity_identifier=task.title,
                old_values={"status": current.value},
                new_values={"status": task.status, **side_effect},
                comment=data.notes,
            )

        logger.info("Offboarding task %s moved %s -> %s", task.id, current.value, task.status)
        return await self.get_task(task.id)

    async def _collect_item(
        self, task: OffboardingTask, data: TaskStatusUpdate, performed_by: User
    ) -> dict:
        """Return the item if the person still holds it; otherwise there is nothing to move."""
        item = await self.custody.enforcer.lock_item(task.item_id)
        if not item or item.assigned_to_person_id != task.person_id:
            return {"item_returned": False}
        transition = await self.custody.return_item(
            ReturnRequest(
                item_id=item.id,
                warehouse_id=data.warehouse_id,
                notes=f"Collected via offboarding task {task.id}",
            ),
            user_id=performed_by.id,
            commit=False,
        )
        return {"item_returned": True, "warehouse_id": transition.item.warehouse_id}

    async def _revoke_grant(self, task: OffboardingTask, performed_by: User) -> dict:
        grant = await self.access.get_grant(task.access_grant_id)
        if grant.status != AccessStatus.ACTIVE.value:
            return {"access_revoked": False}
        await self.access.revoke(
            grant.id,
            RevokeRequest(notes=f"Revoked via offboarding task {task.id}"),
            revoked_by=performed_by.full_name,
            user_id=performed_by.id,
            commit=False,
        )
        return {"access_revoked": True}
