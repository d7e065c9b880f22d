"""Pydantic schemas for tasks.

- TaskCreate: what you POST to create a task
- TaskUpdate: what you PATCH (only the fields you send are applied)
- TaskRead: what the API returns

The wire names (project, assignedto, createdby, duedate) are aliases; the
Python attributes match the ORM columns.
"""

import uuid
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

TaskStatus = Literal["todo", "in_progress", "done"]
TaskPriority = Literal["low", "medium", "high"]


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field(..., min_length=1)
    project_id: uuid.UUID = Field(..., alias="project")
    assigned_to_id: uuid.UUID = Field(..., alias="assignedto")
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = Field(None, alias="duedate")

    model_config = {"populate_by_name": True, "extra": "forbid"}


class TaskUpdate(BaseModel):
    """Partial update — only fields present in the request are applied."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, min_length=1)
    project_id: Optional[uuid.UUID] = Field(None, alias="project")
    assigned_to_id: Optional[uuid.UUID] = Field(None, alias="assignedto")
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = Field(None, alias="duedate")

    model_config = {"populate_by_name": True, "extra": "forbid"}

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        # due_date is the only column that may be cleared
        for name in self.model_fields_set - {"due_date"}:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class TaskRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    status: str
    priority: str
    project_id: uuid.UUID = Field(serialization_alias="project")
    assigned_to_id: uuid.UUID = Field(serialization_alias="assignedto")
    created_by_id: uuid.UUID = Field(serialization_alias="createdby")
    due_date: Optional[date] = Field(None, serialization_alias="duedate")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TaskCreated(BaseModel):
    message: str
    success: bool = True
    taskid: uuid.UUID


class TaskUpdated(BaseModel):
    message: str
    task: TaskRead


class TaskPage(BaseModel):
    tasks: list[TaskRead]
    page: int
    total_pages: int = Field(serialization_alias="totalPages")
    total: int
