import uuid
from datetime import datetime

import pytest
from sqlalchemy import delete, select

from quadro.models.project_member import ProjectMember
from quadro.models.user import AppUser


async def _project_with_member(signup, sent_invitations, role: str = "contributor"):
    owner_client, owner = await signup("owner@example.com", "Owner")
    member_client, member = await signup("member@example.com", "Member")

    project_id = (await owner_client.post("/api/projects", json={"name": "Alpha"})).json()["id"]
    invite = await owner_client.post(
        f"/api/projects/{project_id}/invitations",
        json={"email": "member@example.com", "role": role},
    )
    assert invite.status_code == 201, invite.text

    accept = await member_client.post("/api/invitations/accept", json={"token": sent_invitations[-1]["token"]})
    assert accept.json()["success"] is True
    return project_id, (owner_client, owner), (member_client, member)


@pytest.mark.anyio
async def test_list_members_shows_owner_and_joined_member(signup, sent_invitations):
    project_id, (owner_client, owner), (member_client, member) = await _project_with_member(
        signup, sent_invitations
    )

    for viewer in (owner_client, member_client):
        response = await viewer.get(f"/api/projects/{project_id}/members")
        assert response.status_code == 200
        members = {item["user_id"]: item for item in response.json()}
        assert members[owner["id"]]["role"] == "owner"
        assert members[member["id"]]["role"] == "contributor"
        assert members[member["id"]]["user_email"] == "member@example.com"
        assert members[member["id"]]["invited_by_user_id"] == owner["id"]


@pytest.mark.anyio
async def test_owner_changes_member_role(signup, sent_invitations):
    project_id, (owner_client, _), (_, member) = await _project_with_member(signup, sent_invitations)

    response = await owner_client.patch(
        f"/api/projects/{project_id}/members/{member['id']}",
        json={"role": "owner"},
    )
    assert response.status_code == 200
    assert response.json()["role"] == "owner"
    assert response.json()["user_name"] == "Member"


@pytest.mark.anyio
async def test_owner_cannot_change_own_role(signup, sent_invitations):
    project_id, (owner_client, owner), _ = await _project_with_member(signup, sent_invitations)

    response = await owner_client.patch(
        f"/api/projects/{project_id}/members/{owner['id']}",
        json={"role": "contributor"},
    )
    assert response.status_code == 400


@pytest.mark.anyio
async def test_invalid_role_is_rejected(signup, sent_invitations):
    project_id, (owner_client, _), (_, member) = await _project_with_member(signup, sent_invitations)

    response = await owner_client.patch(
        f"/api/projects/{project_id}/members/{member['id']}",
        json={"role": "admin"},
    )
    assert response.status_code == 422


@pytest.mark.anyio
async def test_member_cannot_run_owner_operations(signup, sent_invitations):
    project_id, (_, owner), (member_client, member) = await _project_with_member(signup, sent_invitations)

    change = await member_client.patch(
        f"/api/projects/{project_id}/members/{owner['id']}",
        json={"role": "contributor"},
    )
    remove = await member_client.delete(f"/api/projects/{project_id}/members/{owner['id']}")
    delete_project = await member_client.delete(f"/api/projects/{project_id}")

    assert change.status_code == 404
    assert remove.status_code == 404
    assert delete_project.status_code == 404


@pytest.mark.anyio
async def test_owner_cannot_remove_self(signup, sent_invitations):
    project_id, (owner_client, owner), _ = await _project_with_member(signup, sent_invitations)

    response = await owner_client.delete(f"/api/projects/{project_id}/members/{owner['id']}")
    assert response.status_code == 400

    members = (await owner_client.get(f"/api/projects/{project_id}/members")).json()
    assert owner["id"] in {item["user_id"] for item in members}


@pytest.mark.anyio
async def test_removed_member_loses_access_until_invited_again(signup, sent_invitations):
    project_id, (owner_client, _), (member_client, member) = await _project_with_member(
        signup, sent_invitations
    )
    before = (await owner_client.get(f"/api/projects/{project_id}/members")).json()
    first_joined_at = next(item["joined_at"] for item in before if item["user_id"] == member["id"])

    response = await owner_client.delete(f"/api/projects/{project_id}/members/{member['id']}")
    assert response.status_code == 204

    assert (await member_client.get(f"/api/projects/{project_id}/board")).status_code == 404
    members = (await owner_client.get(f"/api/projects/{project_id}/members")).json()
    assert member["id"] not in {item["user_id"] for item in members}

    missing = await owner_client.delete(f"/api/projects/{project_id}/members/{member['id']}")
    assert missing.status_code == 404

    invite = await owner_client.post(
        f"/api/projects/{project_id}/invitations",
        json={"email": "member@example.com", "role": "owner"},
    )
    assert invite.status_code == 201
    accept = await member_client.post("/api/invitations/accept", json={"token": sent_invitations[-1]["token"]})
    assert accept.json()["success"] is True

    assert (await member_client.get(f"/api/projects/{project_id}/board")).status_code == 200
    after = (await owner_client.get(f"/api/projects/{project_id}/members")).json()
    rejoined = [item for item in after if item["user_id"] == member["id"]]
    assert len(rejoined) == 1
    assert rejoined[0]["role"] == "owner"
    assert datetime.fromisoformat(rejoined[0]["joined_at"]) > datetime.fromisoformat(first_joined_at)


@pytest.mark.anyio
async def test_accept_activates_existing_inactive_membership(signup, session_factory, sent_invitations):
    owner_client, owner = await signup("owner@example.com", "Owner")
    bob_client, bob = await signup("bob@example.com", "Bob")
    project_id = (await owner_client.post("/api/projects", json={"name": "Alpha"})).json()["id"]

    # Vínculo ainda não ativo: não conta como membro
    async with session_factory() as session:
        session.add(
            ProjectMember(
                project_id=uuid.UUID(project_id),
                user_id=uuid.UUID(bob["id"]),
                role="contributor",
                invited_by_user_id=uuid.UUID(owner["id"]),
                joined_at=None,
            )
        )
        await session.commit()
    assert (await bob_client.get(f"/api/projects/{project_id}/board")).status_code == 404

    invite = await owner_client.post(
        f"/api/projects/{project_id}/invitations",
        json={"email": "bob@example.com", "role": "owner"},
    )
    assert invite.status_code == 201
    accept = await bob_client.post("/api/invitations/accept", json={"token": sent_invitations[-1]["token"]})
    assert accept.json()["success"] is True

    async with session_factory() as session:
        result = await session.execute(
            select(ProjectMember).where(
                ProjectMember.project_id == uuid.UUID(project_id),
                ProjectMember.user_id == uuid.UUID(bob["id"]),
            )
        )
        rows = result.scalars().all()
    assert len(rows) == 1
    assert rows[0].role == "owner"
    assert rows[0].joined_at is not None
    assert (await bob_client.get(f"/api/projects/{project_id}/board")).status_code == 200


@pytest.mark.anyio
async def test_membership_survives_inviter_account_removal(signup, session_factory, sent_invitations):
    project_id, (owner_client, _), (member_client, member) = await _project_with_member(
        signup, sent_invitations
    )
    carol_client, carol = await signup("carol@example.com", "Carol")

    invite = await member_client.post(
        f"/api/projects/{project_id}/invitations",
        json={"email": "carol@example.com"},
    )
    assert invite.status_code == 201
    accept = await carol_client.post("/api/invitations/accept", json={"token": sent_invitations[-1]["token"]})
    assert accept.json()["success"] is True

    async with session_factory() as session:
        await session.execute(delete(AppUser).where(AppUser.id == uuid.UUID(member["id"])))
        await session.commit()

    members = (await owner_client.get(f"/api/projects/{project_id}/members")).json()
    by_user = {item["user_id"]: item for item in members}
    assert member["id"] not in by_user
    assert by_user[carol["id"]]["invited_by_user_id"] is None
    assert (await carol_client.get(f"/api/projects/{project_id}/board")).status_code == 200
