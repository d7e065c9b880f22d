"""Task service — business logic for tasks.

Every operation follows the same shape:
1. Ask the access policy whether the caller may do this
2. Check that referenced records exist (project, assignee)
3. Apply the change
4. Map unique-index violations to Conflict

Task status is a plain enum: todo → in_progress → done is the intended
flow, but any of the three values is accepted on update.
"""

import uuid
from datetime import date
from typing import Any, Mapping, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.auth import policy
from taskdesk.auth.dependencies import Caller
from taskdesk.db.models import Project, Task, User
from taskdesk.errors import Conflict, Forbidden, NotFound
from taskdesk.schemas.common import total_pages
from taskdesk.services.project_service import ProjectService

logger = structlog.get_logger()

DUPLICATE_TASK = "Duplicate task"
DUPLICATE_TASK_DETAILS = (
    "A task with this title is already assigned to this user in this project"
)


class TaskService:
    """Business logic for task CRUD."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.projects = ProjectService(db)

    async def _require_project(self, project_id: uuid.UUID) -> Project:
        project = await self.db.get(Project, project_id)
        if not project:
            raise NotFound("Project not available")
        return project

    async def _require_assignee(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFound("user not available to which task assigned to")
        return user

    async def _commit_or_conflict(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict(DUPLICATE_TASK, DUPLICATE_TASK_DETAILS)

    # ─── Create ──────────────────────────────────────────

    async def create_task(
        self,
        caller: Caller,
        title: str,
        description: str,
        project_id: uuid.UUID,
        assigned_to_id: uuid.UUID,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        due_date: Optional[date] = None,
    ) -> Task:
        """Create a task and assign it. Admin only."""
        policy.authorize_mutation(caller, policy.CREATE_TASK)

        await self._require_project(project_id)
        await self._require_assignee(assigned_to_id)

        duplicate = await self.db.execute(
            select(Task.id).where(
                Task.title == title,
                Task.project_id == project_id,
                Task.assigned_to_id == assigned_to_id,
            )
        )
        if duplicate.first():
            raise Conflict(DUPLICATE_TASK, DUPLICATE_TASK_DETAILS)

        task = Task(
            title=title,
            description=description,
            status=status or "todo",
            priority=priority or "medium",
            project_id=project_id,
            created_by_id=caller.id,
            assigned_to_id=assigned_to_id,
            due_date=due_date,
        )
        self.db.add(task)
        await self._commit_or_conflict()

        logger.info(
            "task.created",
            task_id=str(task.id),
            project_id=str(project_id),
            assigned_to_id=str(assigned_to_id),
            actor_id=str(caller.id),
        )
        return task

    # ─── Read ────────────────────────────────────────────

    async def list_tasks(
        self,
        caller: Caller,
        page: int = 1,
        page_size: int = 1,
        filters: Mapping[str, Any] | None = None,
    ) -> dict:
        """One page of the tasks the caller can see.

        Filters are applied conditionally — only when the caller provides
        them (status, priority, project_id).
        """
        member_project_ids: list[uuid.UUID] = []
        if not caller.is_admin:
            member_project_ids = await self.projects.member_project_ids(caller.id)

        predicates = policy.build_list_filter(
            caller, "task", filters, member_project_ids=member_project_ids
        )

        total = await self.db.scalar(
            select(func.count()).select_from(Task).where(*predicates)
        )
        result = await self.db.execute(
            select(Task)
            .where(*predicates)
            .order_by(Task.created_at, Task.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return {
            "tasks": list(result.scalars().all()),
            "page": page,
            "total_pages": total_pages(total, page_size),
            "total": total,
        }

    async def get_task(self, caller: Caller, task_id: uuid.UUID) -> Task:
        task = await self.db.get(Task, task_id)
        if not task:
            raise NotFound("dont have task with this id")

        # Admins and assignees never need the project lookup.
        project = None
        if not caller.is_admin and task.assigned_to_id != caller.id:
            project = await self.db.get(Project, task.project_id)

        if not policy.authorize_read(caller, task, project):
            raise Forbidden("You are not allowed to view this task")
        return task

    # ─── Update ──────────────────────────────────────────

    async def update_task(
        self,
        caller: Caller,
        task_id: uuid.UUID,
        changes: Mapping[str, Any],
    ) -> Task:
        """Apply a partial update. Fields not in changes are left alone."""
        policy.authorize_mutation(caller, policy.UPDATE_TASK)

        task = await self.db.get(Task, task_id)
        if not task:
            raise NotFound("Task not found")

        if "project_id" in changes:
            await self._require_project(changes["project_id"])
        if "assigned_to_id" in changes:
            await self._require_assignee(changes["assigned_to_id"])

        for field, value in changes.items():
            setattr(task, field, value)

        await self._commit_or_conflict()
        await self.db.refresh(task)

        logger.info(
            "task.updated",
            task_id=str(task_id),
            fields=sorted(changes),
            actor_id=str(caller.id),
        )
        return task

    # ─── Delete ──────────────────────────────────────────

    async def delete_task(self, caller: Caller, task_id: uuid.UUID) -> None:
        policy.authorize_mutation(caller, policy.DELETE_TASK)

        task = await self.db.get(Task, task_id)
        if not task:
            raise NotFound("Task not found")

        await self.db.delete(task)
        await self.db.commit()
        logger.info("task.deleted", task_id=str(task_id), actor_id=str(caller.id))
