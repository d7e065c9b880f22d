"""Task API routes.

Key patterns:
- POST for creation (admin only)
- PATCH for partial updates (admin only; only sent fields change)
- Query params for filtering (status, priority, project)
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk.auth.dependencies import Caller, get_current_user
from taskdesk.config import settings
from taskdesk.db.engine import get_db
from taskdesk.schemas.common import MessageResponse, parse_page_param
from taskdesk.schemas.task import (
    TaskCreate,
    TaskCreated,
    TaskPage,
    TaskPriority,
    TaskRead,
    TaskStatus,
    TaskUpdate,
    TaskUpdated,
)
from taskdesk.services.task_service import TaskService

router = APIRouter(prefix="/tasks")


def _task_svc(db: AsyncSession = Depends(get_db)) -> TaskService:
    return TaskService(db)


@router.post("", response_model=TaskCreated, status_code=201)
async def create_task(
    body: TaskCreate,
    caller: Caller = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Create a task and assign it to a user."""
    task = await svc.create_task(caller, **body.model_dump())
    return TaskCreated(message="task is created", taskid=task.id)


@router.get("", response_model=TaskPage)
async def list_tasks(
    page: Optional[str] = Query(None, description="Page number, from 1"),
    limit: Optional[str] = Query(None, description="Tasks per page"),
    status: Optional[TaskStatus] = Query(None, description="Filter by status"),
    priority: Optional[TaskPriority] = Query(None, description="Filter by priority"),
    project: Optional[uuid.UUID] = Query(None, description="Filter by project id"),
    caller: Caller = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """List the tasks the caller can see, with optional filters."""
    return await svc.list_tasks(
        caller,
        page=parse_page_param(page),
        page_size=parse_page_param(limit, default=settings.default_page_size),
        filters={"status": status, "priority": priority, "project_id": project},
    )


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: uuid.UUID,
    caller: Caller = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    return await svc.get_task(caller, task_id)


@router.patch("/{task_id}", response_model=TaskUpdated)
async def update_task(
    task_id: uuid.UUID,
    body: TaskUpdate,
    caller: Caller = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Partially update a task. Any status value is accepted."""
    task = await svc.update_task(caller, task_id, body.changes())
    return {"message": "Task updated successfully", "task": task}


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: uuid.UUID,
    caller: Caller = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    await svc.delete_task(caller, task_id)
    return {"message": "Task deleted successfully"}
