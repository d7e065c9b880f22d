"""taskdesk-admin — operator commands that have no HTTP route.

Usage:
    taskdesk-admin init-db                          # Create missing tables
    taskdesk-admin add-member PROJECT_ID USER_ID    # Grant project read access
    taskdesk-admin remove-member PROJECT_ID USER_ID # Revoke it
    taskdesk-admin promote USER_ID                  # Make a user an admin
    taskdesk-admin serve                            # Run the API with uvicorn

These talk to the database directly (TASKDESK_DATABASE_URL), not to a
running server.
"""

from __future__ import annotations

import asyncio
import sys
import uuid
from typing import Awaitable, Callable, TypeVar

import click
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk import __version__
from taskdesk.config import settings
from taskdesk.errors import ServiceError

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler."""
    return asyncio.run(coro)


async def _with_session(action: Callable[[AsyncSession], Awaitable[T]]) -> T:
    from taskdesk.db.engine import async_session_factory, engine

    try:
        async with async_session_factory() as session:
            return await action(session)
    finally:
        await engine.dispose()


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


def _call(action: Callable[[AsyncSession], Awaitable[T]]) -> T:
    try:
        return _run(_with_session(action))
    except ServiceError as e:
        _fail(e.message)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="taskdesk-admin")
def main():
    """taskdesk operator commands."""


@main.command("init-db")
def init_db():
    """Create any tables that don't exist yet."""
    from taskdesk.db.engine import create_all, engine

    async def _init():
        try:
            await create_all(engine)
        finally:
            await engine.dispose()

    _run(_init())
    click.secho("Tables created", fg="green")


@main.command("add-member")
@click.argument("project_id", type=click.UUID)
@click.argument("user_id", type=click.UUID)
def add_member(project_id: uuid.UUID, user_id: uuid.UUID):
    """Give USER_ID read access to PROJECT_ID and its tasks."""
    from taskdesk.services.project_service import ProjectService

    project = _call(lambda db: ProjectService(db).add_member(project_id, user_id))
    click.secho(
        f"{user_id} is a member of '{project.title}' "
        f"({len(project.member_ids)} member(s))",
        fg="green",
    )


@main.command("remove-member")
@click.argument("project_id", type=click.UUID)
@click.argument("user_id", type=click.UUID)
def remove_member(project_id: uuid.UUID, user_id: uuid.UUID):
    """Revoke USER_ID's membership of PROJECT_ID."""
    from taskdesk.services.project_service import ProjectService

    project = _call(lambda db: ProjectService(db).remove_member(project_id, user_id))
    click.secho(f"{user_id} removed from '{project.title}'", fg="green")


@main.command()
@click.argument("user_id", type=click.UUID)
@click.option("--role", type=click.Choice(["user", "admin"]), default="admin",
              show_default=True)
def promote(user_id: uuid.UUID, role: str):
    """Set USER_ID's role. Tokens issued before the change keep the old role."""
    from taskdesk.services.user_service import UserService

    user = _call(lambda db: UserService(db).set_role(user_id, role))
    click.secho(f"{user.email} is now {user.role}", fg="green")


@main.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", default=None, type=int, help="Port (default from settings)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "taskdesk.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


if __name__ == "__main__":
    main()
