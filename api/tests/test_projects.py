import pytest
from sqlalchemy import select

from quadro.models.board_column import BoardColumn
from quadro.models.project import Project
from quadro.models.project_member import ProjectMember


@pytest.mark.anyio
async def test_create_project_enrolls_owner_and_default_columns(signup, session_factory):
    owner_client, owner = await signup("owner@example.com", "Owner")

    response = await owner_client.post("/api/projects", json={"name": "Alpha", "description": "Primeiro"})
    assert response.status_code == 201
    project = response.json()
    assert project["name"] == "Alpha"
    assert project["is_owner"] is True
    assert project["owner_id"] == owner["id"]

    async with session_factory() as session:
        members = (await session.execute(select(ProjectMember))).scalars().all()
        columns = (
            await session.execute(select(BoardColumn).order_by(BoardColumn.position))
        ).scalars().all()

    assert len(members) == 1
    assert str(members[0].user_id) == owner["id"]
    assert members[0].role == "owner"
    assert members[0].joined_at is not None
    assert [column.name for column in columns] == ["To Do", "In Progress", "Done"]
    assert [column.position for column in columns] == [0, 1, 2]


@pytest.mark.anyio
async def test_blank_project_name_is_rejected(signup):
    owner_client, _ = await signup("owner@example.com", "Owner")

    response = await owner_client.post("/api/projects", json={"name": "   "})
    assert response.status_code == 422


@pytest.mark.anyio
async def test_list_projects_only_returns_visible_projects(signup):
    alice_client, _ = await signup("alice@example.com", "Alice")
    bob_client, _ = await signup("bob@example.com", "Bob")

    await alice_client.post("/api/projects", json={"name": "Da Alice"})
    await bob_client.post("/api/projects", json={"name": "Do Bob"})

    alice_projects = (await alice_client.get("/api/projects")).json()
    assert [project["name"] for project in alice_projects] == ["Da Alice"]


@pytest.mark.anyio
async def test_outsider_gets_not_found_for_existing_project(signup):
    owner_client, _ = await signup("owner@example.com", "Owner")
    outsider_client, _ = await signup("outsider@example.com", "Outsider")

    project_id = (await owner_client.post("/api/projects", json={"name": "Alpha"})).json()["id"]

    for path in (
        f"/api/projects/{project_id}",
        f"/api/projects/{project_id}/board",
        f"/api/projects/{project_id}/members",
        f"/api/projects/{project_id}/invitations",
    ):
        response = await outsider_client.get(path)
        assert response.status_code == 404, path
        assert response.json()["detail"] == "Projeto não encontrado"

    missing = await outsider_client.get("/api/projects/00000000-0000-0000-0000-000000000000")
    assert missing.status_code == 404
    assert missing.json() == response.json()


@pytest.mark.anyio
async def test_update_and_delete_project_by_owner(signup, session_factory):
    owner_client, _ = await signup("owner@example.com", "Owner")
    project_id = (await owner_client.post("/api/projects", json={"name": "Alpha"})).json()["id"]

    update_response = await owner_client.patch(
        f"/api/projects/{project_id}",
        json={"name": "Alpha 2", "description": "Renomeado"},
    )
    assert update_response.status_code == 200
    assert update_response.json()["name"] == "Alpha 2"
    assert update_response.json()["description"] == "Renomeado"

    delete_response = await owner_client.delete(f"/api/projects/{project_id}")
    assert delete_response.status_code == 204

    async with session_factory() as session:
        assert (await session.execute(select(Project))).scalars().all() == []
        assert (await session.execute(select(ProjectMember))).scalars().all() == []
        assert (await session.execute(select(BoardColumn))).scalars().all() == []

    assert (await owner_client.get(f"/api/projects/{project_id}")).status_code == 404


@pytest.mark.anyio
async def test_unauthenticated_requests_are_rejected(client):
    response = await client.get("/api/projects")
    assert response.status_code == 401
