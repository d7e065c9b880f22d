"""Project API tests — creation, visibility, pagination, deletion.

Pattern: build up data through the API as an admin, then check what each
kind of caller (admin, owner, member, stranger) gets back.
"""

import asyncio
import uuid

import pytest

from taskdesk.auth.dependencies import Caller
from taskdesk.errors import Conflict
from taskdesk.services.project_service import ProjectService


async def _create(client, admin, title="Redesign", description="New look"):
    r = await client.post(
        "/api/v1/project",
        json={"title": title, "description": description},
        headers=admin.headers,
    )
    assert r.status_code == 201, r.text
    return r


async def _project_id(client, admin, title):
    r = await client.get(
        "/api/v1/project",
        params={"limit": 100, "owner": str(admin.id)},
        headers=admin.headers,
    )
    return next(p["id"] for p in r.json()["projects"] if p["title"] == title)


# ═══════════════════════════════════════════════════════════
# Create
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_project(client, admin):
    r = await _create(client, admin)
    assert r.json() == {"message": "project is added"}


@pytest.mark.asyncio
async def test_create_project_requires_admin(client, user):
    r = await client.post(
        "/api/v1/project",
        json={"title": "Mine", "description": "Not allowed"},
        headers=user.headers,
    )
    assert r.status_code == 403
    assert r.json()["error"] == "Admin access required"


@pytest.mark.asyncio
async def test_create_project_requires_auth(client):
    r = await client.post(
        "/api/v1/project", json={"title": "Anon", "description": "Nope"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_create_project_validates_body(client, admin):
    r = await client.post(
        "/api/v1/project", json={"title": ""}, headers=admin.headers
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_create_duplicate_project_conflicts(client, admin):
    await _create(client, admin, title="Redesign")

    r = await client.post(
        "/api/v1/project",
        json={"title": "Redesign", "description": "Again"},
        headers=admin.headers,
    )
    assert r.status_code == 409
    assert r.json()["error"] == "Duplicate project"


@pytest.mark.asyncio
async def test_same_title_different_owner_is_allowed(client, admin, make_user):
    other_admin = await make_user(role="admin")
    await _create(client, admin, title="Shared name")
    await _create(client, other_admin, title="Shared name")


@pytest.mark.asyncio
async def test_concurrent_duplicate_creates_yield_one_conflict(session_factory, admin):
    """However the two inserts interleave, exactly one wins."""
    caller = Caller(id=admin.id, role="admin")

    async def attempt():
        async with session_factory() as db:
            return await ProjectService(db).create_project(caller, "Race", "Who wins")

    results = await asyncio.gather(attempt(), attempt(), return_exceptions=True)
    conflicts = [r for r in results if isinstance(r, Conflict)]
    created = [r for r in results if not isinstance(r, Exception)]
    assert len(created) == 1
    assert len(conflicts) == 1


# ═══════════════════════════════════════════════════════════
# Read
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_then_get_round_trip(client, admin):
    await _create(client, admin, title="Round trip", description="Same data back")
    project_id = await _project_id(client, admin, "Round trip")

    r = await client.get(f"/api/v1/project/{project_id}", headers=admin.headers)
    assert r.status_code == 200
    project = r.json()
    assert project["title"] == "Round trip"
    assert project["description"] == "Same data back"
    assert project["owner"] == str(admin.id)
    assert project["members"] == []


@pytest.mark.asyncio
async def test_get_project_membership_scenario(client, db_session, admin, user):
    """Stranger gets 403; after being added as a member, 200."""
    await _create(client, admin, title="Redesign", description="...")
    project_id = await _project_id(client, admin, "Redesign")

    r = await client.get(f"/api/v1/project/{project_id}", headers=user.headers)
    assert r.status_code == 403

    await ProjectService(db_session).add_member(uuid.UUID(project_id), user.id)

    r = await client.get(f"/api/v1/project/{project_id}", headers=user.headers)
    assert r.status_code == 200
    assert str(user.id) in r.json()["members"]


@pytest.mark.asyncio
async def test_get_missing_project(client, admin):
    r = await client.get(f"/api/v1/project/{uuid.uuid4()}", headers=admin.headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_get_project_with_malformed_id(client, admin):
    r = await client.get("/api/v1/project/not-a-uuid", headers=admin.headers)
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# List + pagination
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_list_projects_admin_sees_all(client, admin, make_user):
    other_admin = await make_user(role="admin")
    await _create(client, admin, title="A")
    await _create(client, other_admin, title="B")

    r = await client.get(
        "/api/v1/project", params={"limit": 10}, headers=admin.headers
    )
    assert r.status_code == 200
    data = r.json()
    assert data["total"] == 2
    assert {p["title"] for p in data["projects"]} == {"A", "B"}


@pytest.mark.asyncio
async def test_list_projects_pagination(client, admin):
    for i in range(5):
        await _create(client, admin, title=f"P{i}")

    r = await client.get(
        "/api/v1/project", params={"page": 2, "limit": 2}, headers=admin.headers
    )
    data = r.json()
    assert data["page"] == 2
    assert data["total"] == 5
    assert data["totalPages"] == 3
    assert len(data["projects"]) == 2

    r = await client.get(
        "/api/v1/project", params={"page": 3, "limit": 2}, headers=admin.headers
    )
    assert len(r.json()["projects"]) == 1


@pytest.mark.asyncio
async def test_list_projects_bad_paging_defaults_to_one(client, admin):
    await _create(client, admin, title="One")
    await _create(client, admin, title="Two")

    r = await client.get(
        "/api/v1/project",
        params={"page": "abc", "limit": "-3"},
        headers=admin.headers,
    )
    data = r.json()
    assert data["page"] == 1
    assert len(data["projects"]) == 1
    assert data["totalPages"] == 2


@pytest.mark.asyncio
async def test_list_projects_out_of_range_paging_defaults_to_one(client, admin):
    await _create(client, admin, title="Only")

    r = await client.get(
        "/api/v1/project",
        params={"page": "99999999999999999999", "limit": str(2**40)},
        headers=admin.headers,
    )
    assert r.status_code == 200
    data = r.json()
    assert data["page"] == 1
    assert [p["title"] for p in data["projects"]] == ["Only"]


@pytest.mark.asyncio
async def test_list_projects_non_admin_sees_only_owned_or_member(
    client, db_session, admin, make_user
):
    """Every listed project has the caller as owner or member."""
    member = await make_user()
    for title in ("Visible", "Hidden 1", "Hidden 2"):
        await _create(client, admin, title=title)
    visible_id = await _project_id(client, admin, "Visible")
    await ProjectService(db_session).add_member(uuid.UUID(visible_id), member.id)

    r = await client.get(
        "/api/v1/project", params={"limit": 50}, headers=member.headers
    )
    data = r.json()
    assert data["total"] == 1
    for project in data["projects"]:
        assert project["owner"] == str(member.id) or str(member.id) in project["members"]


@pytest.mark.asyncio
async def test_list_projects_empty_for_stranger(client, admin, user):
    await _create(client, admin, title="Private")
    r = await client.get("/api/v1/project", headers=user.headers)
    assert r.status_code == 200
    assert r.json() == {"projects": [], "page": 1, "totalPages": 0, "total": 0}


# ═══════════════════════════════════════════════════════════
# Delete
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_delete_project(client, admin):
    await _create(client, admin, title="Doomed")
    project_id = await _project_id(client, admin, "Doomed")

    r = await client.delete(f"/api/v1/project/{project_id}", headers=admin.headers)
    assert r.status_code == 200
    assert r.json() == {"message": "project deleted"}

    r = await client.get(f"/api/v1/project/{project_id}", headers=admin.headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_delete_project_requires_admin(client, admin, user):
    await _create(client, admin, title="Safe")
    project_id = await _project_id(client, admin, "Safe")

    r = await client.delete(f"/api/v1/project/{project_id}", headers=user.headers)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_delete_missing_project(client, admin):
    r = await client.delete(f"/api/v1/project/{uuid.uuid4()}", headers=admin.headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_deleting_project_removes_memberships(client, db_session, admin, user):
    await _create(client, admin, title="Short lived")
    project_id = uuid.UUID(await _project_id(client, admin, "Short lived"))
    svc = ProjectService(db_session)
    await svc.add_member(project_id, user.id)
    assert await svc.member_project_ids(user.id) == [project_id]

    await client.delete(f"/api/v1/project/{project_id}", headers=admin.headers)

    assert await svc.member_project_ids(user.id) == []
