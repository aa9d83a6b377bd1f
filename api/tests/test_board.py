import pytest


async def _board(client, project_id):
    response = await client.get(f"/api/projects/{project_id}/board")
    assert response.status_code == 200
    return response.json()


@pytest.mark.anyio
async def test_create_issues_in_column_order(signup):
    owner_client, owner = await signup("owner@example.com", "Owner")
    project_id = (await owner_client.post("/api/projects", json={"name": "Alpha"})).json()["id"]

    todo = (await _board(owner_client, project_id))["columns"][0]
    for title in ("Primeira", "Segunda"):
        response = await owner_client.post(
            f"/api/projects/{project_id}/issues",
            json={"column_id": todo["id"], "title": title, "priority": "high"},
        )
        assert response.status_code == 201
        assert response.json()["reporter_id"] == owner["id"]

    board = await _board(owner_client, project_id)
    issues = board["columns"][0]["issues"]
    assert [issue["title"] for issue in issues] == ["Primeira", "Segunda"]
    assert [issue["position"] for issue in issues] == [0, 1]
    assert all(issue["priority"] == "high" for issue in issues)


@pytest.mark.anyio
async def test_move_issue_to_other_column_appends_at_end(signup):
    owner_client, _ = await signup("owner@example.com", "Owner")
    project_id = (await owner_client.post("/api/projects", json={"name": "Alpha"})).json()["id"]
    todo, doing, _ = (await _board(owner_client, project_id))["columns"]

    await owner_client.post(
        f"/api/projects/{project_id}/issues", json={"column_id": doing["id"], "title": "Já lá"}
    )
    issue = (
        await owner_client.post(
            f"/api/projects/{project_id}/issues", json={"column_id": todo["id"], "title": "Mover"}
        )
    ).json()

    response = await owner_client.patch(
        f"/api/projects/{project_id}/issues/{issue['id']}",
        json={"column_id": doing["id"], "status": "in_progress"},
    )
    assert response.status_code == 200
    moved = response.json()
    assert moved["column_id"] == doing["id"]
    assert moved["position"] == 1
    assert moved["status"] == "in_progress"
    assert moved["title"] == "Mover"


@pytest.mark.anyio
async def test_issue_from_other_project_column_is_rejected(signup):
    owner_client, _ = await signup("owner@example.com", "Owner")
    alpha = (await owner_client.post("/api/projects", json={"name": "Alpha"})).json()["id"]
    beta = (await owner_client.post("/api/projects", json={"name": "Beta"})).json()["id"]
    beta_column = (await _board(owner_client, beta))["columns"][0]

    response = await owner_client.post(
        f"/api/projects/{alpha}/issues", json={"column_id": beta_column["id"], "title": "Errada"}
    )
    assert response.status_code == 404


@pytest.mark.anyio
async def test_assignee_must_participate_in_project(signup):
    owner_client, owner = await signup("owner@example.com", "Owner")
    _, outsider = await signup("outsider@example.com", "Outsider")
    project_id = (await owner_client.post("/api/projects", json={"name": "Alpha"})).json()["id"]
    column = (await _board(owner_client, project_id))["columns"][0]

    rejected = await owner_client.post(
        f"/api/projects/{project_id}/issues",
        json={"column_id": column["id"], "title": "Tarefa", "assignee_id": outsider["id"]},
    )
    assert rejected.status_code == 422

    accepted = await owner_client.post(
        f"/api/projects/{project_id}/issues",
        json={"column_id": column["id"], "title": "Tarefa", "assignee_id": owner["id"]},
    )
    assert accepted.status_code == 201
    assert accepted.json()["assignee_id"] == owner["id"]


@pytest.mark.anyio
async def test_member_works_on_board_but_cannot_delete_column(signup, sent_invitations):
    owner_client, _ = await signup("owner@example.com", "Owner")
    member_client, _ = await signup("member@example.com", "Member")
    project_id = (await owner_client.post("/api/projects", json={"name": "Alpha"})).json()["id"]
    await owner_client.post(f"/api/projects/{project_id}/invitations", json={"email": "member@example.com"})
    await member_client.post("/api/invitations/accept", json={"token": sent_invitations[-1]["token"]})

    column = (await _board(member_client, project_id))["columns"][2]
    created = await member_client.post(
        f"/api/projects/{project_id}/issues", json={"column_id": column["id"], "title": "Do membro"}
    )
    assert created.status_code == 201
    issue_id = created.json()["id"]

    deleted_issue = await member_client.delete(f"/api/projects/{project_id}/issues/{issue_id}")
    assert deleted_issue.status_code == 204

    forbidden = await member_client.delete(f"/api/projects/{project_id}/columns/{column['id']}")
    assert forbidden.status_code == 404

    removed = await owner_client.delete(f"/api/projects/{project_id}/columns/{column['id']}")
    assert removed.status_code == 204
    assert [c["name"] for c in (await _board(owner_client, project_id))["columns"]] == ["To Do", "In Progress"]


@pytest.mark.anyio
async def test_deleting_column_removes_its_issues(signup):
    owner_client, _ = await signup("owner@example.com", "Owner")
    project_id = (await owner_client.post("/api/projects", json={"name": "Alpha"})).json()["id"]
    column = (await _board(owner_client, project_id))["columns"][0]
    issue = (
        await owner_client.post(
            f"/api/projects/{project_id}/issues", json={"column_id": column["id"], "title": "Some junto"}
        )
    ).json()

    await owner_client.delete(f"/api/projects/{project_id}/columns/{column['id']}")

    response = await owner_client.patch(
        f"/api/projects/{project_id}/issues/{issue['id']}", json={"title": "Ainda existe?"}
    )
    assert response.status_code == 404
