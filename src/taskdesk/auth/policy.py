"""Access policy — who may change what, and who may see what.

Every function here is a pure decision over a Caller and records or filter
values already in hand. Nothing touches the database, so the rules can be
tested without one; services do the lookups and hand the results in.

Rules:
- Creating/deleting projects and creating/updating/deleting tasks is
  admin-only.
- A project is visible to admins, its owner, and its members.
- A task is visible to admins, its assignee, and members of its project.
  If the project is gone, the task read is a 404, not a 403.
- Admins are never narrowed: their list filters are exactly what they
  asked for.
"""

import uuid
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import ColumnElement, or_, select

from taskdesk.auth.dependencies import Caller
from taskdesk.db.models import Project, ProjectMember, Task
from taskdesk.errors import Forbidden, NotFound, ValidationError


CREATE_PROJECT = "create_project"
DELETE_PROJECT = "delete_project"
CREATE_TASK = "create_task"
UPDATE_TASK = "update_task"
DELETE_TASK = "delete_task"

ADMIN_ONLY_ACTIONS = frozenset(
    {CREATE_PROJECT, DELETE_PROJECT, CREATE_TASK, UPDATE_TASK, DELETE_TASK}
)

# Filters a caller may add on top of the visibility rule.
PROJECT_FILTERS = {"owner_id": Project.owner_id}
TASK_FILTERS = {
    "status": Task.status,
    "priority": Task.priority,
    "project_id": Task.project_id,
}


# ─── Mutations ───────────────────────────────────────────


def authorize_mutation(caller: Caller, action: str) -> None:
    """Raise Forbidden unless the caller may perform a write action."""
    if action not in ADMIN_ONLY_ACTIONS:
        raise ValueError(f"Unknown action: {action}")
    if not caller.is_admin:
        raise Forbidden("Admin access required")


# ─── Single-resource reads ───────────────────────────────


def can_read_project(caller: Caller, project: Project) -> bool:
    if caller.is_admin:
        return True
    if project.owner_id == caller.id:
        return True
    return caller.id in project.member_ids


def can_read_task(
    caller: Caller, task: Task, project: Optional[Project]
) -> bool:
    """Decide task visibility.

    project is the task's project as looked up by the caller of this
    function, or None if the lookup found nothing. A missing project only
    matters once admin and assignee access have been ruled out.
    """
    if caller.is_admin:
        return True
    if task.assigned_to_id == caller.id:
        return True
    if project is None:
        raise NotFound("Project not found")
    return caller.id in project.member_ids


def authorize_read(
    caller: Caller,
    resource: Project | Task,
    project: Optional[Project] = None,
) -> bool:
    if isinstance(resource, Project):
        return can_read_project(caller, resource)
    if isinstance(resource, Task):
        return can_read_task(caller, resource, project)
    raise TypeError(f"No read policy for {type(resource).__name__}")


# ─── List filters ────────────────────────────────────────


def _user_predicates(
    allowed: Mapping[str, Any], user_filters: Mapping[str, Any]
) -> list[ColumnElement[bool]]:
    predicates = []
    for key, value in user_filters.items():
        if value is None:
            continue
        column = allowed.get(key)
        if column is None:
            raise ValidationError(f"Unsupported filter: {key}")
        predicates.append(column == value)
    return predicates


def project_list_filter(
    caller: Caller, user_filters: Mapping[str, Any] | None = None
) -> list[ColumnElement[bool]]:
    predicates = _user_predicates(PROJECT_FILTERS, user_filters or {})
    if caller.is_admin:
        return predicates
    member_of = select(ProjectMember.project_id).where(
        ProjectMember.user_id == caller.id
    )
    visible = or_(Project.owner_id == caller.id, Project.id.in_(member_of))
    return [visible, *predicates]


def task_list_filter(
    caller: Caller,
    member_project_ids: Iterable[uuid.UUID] = (),
    user_filters: Mapping[str, Any] | None = None,
) -> list[ColumnElement[bool]]:
    """Task predicates. member_project_ids is ignored for admins."""
    predicates = _user_predicates(TASK_FILTERS, user_filters or {})
    if caller.is_admin:
        return predicates
    visible = or_(
        Task.assigned_to_id == caller.id,
        Task.project_id.in_(list(member_project_ids)),
    )
    return [visible, *predicates]


def build_list_filter(
    caller: Caller,
    resource_kind: str,
    user_filters: Mapping[str, Any] | None = None,
    member_project_ids: Iterable[uuid.UUID] = (),
) -> list[ColumnElement[bool]]:
    if resource_kind == "project":
        return project_list_filter(caller, user_filters)
    if resource_kind == "task":
        return task_list_filter(caller, member_project_ids, user_filters)
    raise ValueError(f"Unknown resource kind: {resource_kind}")
