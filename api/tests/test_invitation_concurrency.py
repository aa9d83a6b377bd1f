import asyncio
import uuid

import pytest
from sqlalchemy import select

from quadro.models.project_invitation import ProjectInvitation
from quadro.models.project_member import ProjectMember
from quadro.services import invitations
from quadro.services.auth import create_user
from quadro.services.invitations import AlreadyAccepted
from quadro.services.projects import create_project

ATTEMPTS = 4


async def _seed(session_factory):
    async with session_factory() as session:
        owner = await create_user(
            session, email="owner@example.com", password="supersecret", name="Owner", verified=True
        )
        bob = await create_user(
            session, email="bob@example.com", password="supersecret", name="Bob", verified=True
        )
        project = await create_project(session, owner=owner, name="Alpha")
    return owner, bob, project


@pytest.mark.anyio
async def test_concurrent_invites_and_accepts(file_session_factory, sent_invitations):
    owner, bob, project = await _seed(file_session_factory)

    async def invite():
        async with file_session_factory() as session:
            return await invitations.create_invitation(
                session, project=project, inviter=owner, email="bob@example.com", role="contributor"
            )

    created = await asyncio.gather(*(invite() for _ in range(ATTEMPTS)))
    assert len(sent_invitations) == ATTEMPTS

    async with file_session_factory() as session:
        result = await session.execute(
            select(ProjectInvitation).where(
                ProjectInvitation.email == "bob@example.com",
                ProjectInvitation.accepted_at.is_(None),
            )
        )
        pending = result.scalars().all()
    assert len(pending) == 1
    assert pending[0].token in {item.invitation.token for item in created}

    token = pending[0].token

    async def accept():
        async with file_session_factory() as session:
            return await invitations.accept_invitation(session, token, bob)

    results = await asyncio.gather(*(accept() for _ in range(ATTEMPTS)), return_exceptions=True)

    joined = [item for item in results if isinstance(item, uuid.UUID)]
    refused = [item for item in results if not isinstance(item, uuid.UUID)]
    assert joined == [project.id]
    assert len(refused) == ATTEMPTS - 1
    assert all(isinstance(item, AlreadyAccepted) for item in refused)

    async with file_session_factory() as session:
        result = await session.execute(
            select(ProjectMember).where(
                ProjectMember.project_id == project.id,
                ProjectMember.user_id == bob.id,
            )
        )
        memberships = result.scalars().all()
    assert len(memberships) == 1
    assert memberships[0].role == "contributor"
    assert memberships[0].joined_at is not None
