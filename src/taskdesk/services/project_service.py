"""Project service — create, list, read and delete projects.

Service layer separates business logic from HTTP routing: routes parse
requests and call in here, this module asks the access policy what the
caller may do and then talks to the database.
"""

import uuid
from typing import Any, Mapping, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.auth import policy
from taskdesk.auth.dependencies import Caller
from taskdesk.db.models import Project, ProjectMember, User
from taskdesk.errors import Conflict, Forbidden, NotFound
from taskdesk.schemas.common import total_pages

logger = structlog.get_logger()

DUPLICATE_PROJECT = "Duplicate project"
DUPLICATE_PROJECT_DETAILS = "You already have a project with this title"


class ProjectService:
    """Business logic for projects and their members."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find(self, project_id: uuid.UUID) -> Optional[Project]:
        return await self.db.get(Project, project_id)

    # ─── Create ──────────────────────────────────────────

    async def create_project(
        self, caller: Caller, title: str, description: str
    ) -> Project:
        """Create a project owned by the (admin) caller."""
        policy.authorize_mutation(caller, policy.CREATE_PROJECT)

        existing = await self.db.execute(
            select(Project.id).where(
                Project.title == title, Project.owner_id == caller.id
            )
        )
        if existing.first():
            raise Conflict(DUPLICATE_PROJECT, DUPLICATE_PROJECT_DETAILS)

        project = Project(
            title=title,
            description=description,
            owner_id=caller.id,
            memberships=[],
        )
        self.db.add(project)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with an identical create; the unique index caught it.
            await self.db.rollback()
            raise Conflict(DUPLICATE_PROJECT, DUPLICATE_PROJECT_DETAILS)

        await self.db.refresh(project)
        logger.info(
            "project.created", project_id=str(project.id), owner_id=str(caller.id)
        )
        return project

    # ─── Read ────────────────────────────────────────────

    async def list_projects(
        self,
        caller: Caller,
        page: int = 1,
        page_size: int = 1,
        user_filters: Mapping[str, Any] | None = None,
    ) -> dict:
        """One page of the projects the caller can see."""
        filters = policy.build_list_filter(caller, "project", user_filters)

        total = await self.db.scalar(
            select(func.count()).select_from(Project).where(*filters)
        )
        result = await self.db.execute(
            select(Project)
            .where(*filters)
            .order_by(Project.created_at, Project.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return {
            "projects": list(result.scalars().all()),
            "page": page,
            "total_pages": total_pages(total, page_size),
            "total": total,
        }

    async def get_project(self, caller: Caller, project_id: uuid.UUID) -> Project:
        project = await self._find(project_id)
        if not project:
            raise NotFound("No project for this id")
        if not policy.authorize_read(caller, project):
            raise Forbidden("access denied")
        return project

    # ─── Delete ──────────────────────────────────────────

    async def delete_project(self, caller: Caller, project_id: uuid.UUID) -> None:
        """Delete a project and its memberships. Its tasks are left in place."""
        policy.authorize_mutation(caller, policy.DELETE_PROJECT)

        project = await self._find(project_id)
        if not project:
            raise NotFound("project no available")

        await self.db.delete(project)
        await self.db.commit()
        logger.info(
            "project.deleted", project_id=str(project_id), actor_id=str(caller.id)
        )

    # ─── Members ─────────────────────────────────────────

    async def add_member(self, project_id: uuid.UUID, user_id: uuid.UUID) -> Project:
        """Grant a user read access to a project. Adding twice is a no-op."""
        project = await self._find(project_id)
        if not project:
            raise NotFound("Project not found")
        if not await self.db.get(User, user_id):
            raise NotFound("User not found")

        if user_id not in project.member_ids:
            project.memberships.append(
                ProjectMember(project_id=project.id, user_id=user_id)
            )
            try:
                await self.db.commit()
            except IntegrityError:
                # Added concurrently; the membership exists either way.
                await self.db.rollback()
            await self.db.refresh(project)
            logger.info(
                "project.member_added",
                project_id=str(project_id),
                user_id=str(user_id),
            )
        return project

    async def remove_member(
        self, project_id: uuid.UUID, user_id: uuid.UUID
    ) -> Project:
        project = await self._find(project_id)
        if not project:
            raise NotFound("Project not found")

        membership = next(
            (m for m in project.memberships if m.user_id == user_id), None
        )
        if membership is None:
            raise NotFound("User is not a member of this project")

        project.memberships.remove(membership)
        await self.db.commit()
        await self.db.refresh(project)
        logger.info(
            "project.member_removed", project_id=str(project_id), user_id=str(user_id)
        )
        return project

    async def member_project_ids(self, user_id: uuid.UUID) -> list[uuid.UUID]:
        """Ids of every project the user is a member of (ownership excluded)."""
        result = await self.db.execute(
            select(ProjectMember.project_id).where(ProjectMember.user_id == user_id)
        )
        return list(result.scalars().all())
