"""Project API routes.

Routes translate HTTP to service calls; the service raises the error
kinds in taskdesk.errors and the app-level handlers turn them into status
codes, so nothing here builds an error response.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.auth.dependencies import Caller, get_current_user
from taskdesk.config import settings
from taskdesk.db.engine import get_db
from taskdesk.schemas.common import MessageResponse, parse_page_param
from taskdesk.schemas.project import ProjectCreate, ProjectPage, ProjectRead
from taskdesk.services.project_service import ProjectService

router = APIRouter(prefix="/project")


def _project_svc(db: AsyncSession = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


@router.post("", response_model=MessageResponse, status_code=201)
async def create_project(
    body: ProjectCreate,
    caller: Caller = Depends(get_current_user),
    svc: ProjectService = Depends(_project_svc),
):
    """Create a project owned by the calling admin."""
    await svc.create_project(caller, title=body.title, description=body.description)
    return {"message": "project is added"}


@router.get("", response_model=ProjectPage)
async def list_projects(
    page: Optional[str] = Query(None, description="Page number, from 1"),
    limit: Optional[str] = Query(None, description="Projects per page"),
    owner: Optional[uuid.UUID] = Query(None, description="Filter by owner id"),
    caller: Caller = Depends(get_current_user),
    svc: ProjectService = Depends(_project_svc),
):
    """List the projects the caller can see, one page at a time."""
    return await svc.list_projects(
        caller,
        page=parse_page_param(page),
        page_size=parse_page_param(limit, default=settings.default_page_size),
        user_filters={"owner_id": owner},
    )


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: uuid.UUID,
    caller: Caller = Depends(get_current_user),
    svc: ProjectService = Depends(_project_svc),
):
    return await svc.get_project(caller, project_id)


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: uuid.UUID,
    caller: Caller = Depends(get_current_user),
    svc: ProjectService = Depends(_project_svc),
):
    """Delete a project. Tasks filed under it are not deleted."""
    await svc.delete_project(caller, project_id)
    return {"message": "project deleted"}
