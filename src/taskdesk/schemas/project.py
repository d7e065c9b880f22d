"""Pydantic schemas for projects.

Response field names follow the public API (owner, members, totalPages)
while the Python side keeps the column names.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ProjectCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)


class ProjectRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    owner_id: uuid.UUID = Field(serialization_alias="owner")
    member_ids: list[uuid.UUID] = Field(serialization_alias="members")
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProjectPage(BaseModel):
    projects: list[ProjectRead]
    page: int
    total_pages: int = Field(serialization_alias="totalPages")
    total: int
