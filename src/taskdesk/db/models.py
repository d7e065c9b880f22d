"""SQLAlchemy ORM models — single source of truth for the database schema.

Declarative mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Column types are the portable ones (Uuid, String, Date) so the same models
run on PostgreSQL in production and SQLite in tests.

References between users, projects and tasks are plain UUID columns, not
foreign keys: existence is checked by the services at write time, and a
deleted project leaves its tasks behind as orphans that read as 404.
Uniqueness, on the other hand, is enforced here and is the final word when
two requests race past the services' pre-checks.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


ROLES = ("user", "admin")


class User(Base):
    """A person who can sign in. Role is either "user" or "admin"."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(10), nullable=False, default="user")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Project(Base):
    """A project owned by the admin who created it.

    One owner can't have two projects with the same title.
    """

    __tablename__ = "projects"
    __table_args__ = (
        UniqueConstraint("title", "owner_id", name="uq_projects_title_owner"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    memberships: Mapped[list["ProjectMember"]] = relationship(
        primaryjoin="Project.id == foreign(ProjectMember.project_id)",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def member_ids(self) -> list[uuid.UUID]:
        return [m.user_id for m in self.memberships]


class ProjectMember(Base):
    """Project membership — read access without ownership."""

    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members"),
        Index("idx_project_members_user", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    project_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Task(Base):
    """A unit of work inside a project, assigned to one user.

    status moves todo → in_progress → done by convention only; any
    value may be written at any time.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        UniqueConstraint(
            "title", "project_id", "assigned_to_id",
            name="uq_tasks_title_project_assignee",
        ),
        Index("idx_tasks_status", "status"),
        Index("idx_tasks_priority", "priority"),
        Index("idx_tasks_project", "project_id"),
        Index("idx_tasks_assignee", "assigned_to_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="todo")
    priority: Mapped[str] = mapped_column(
        String(10), nullable=False, default="medium"
    )
    project_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_by_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    assigned_to_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=utcnow
    )
