"""
Membros e convites de um projeto.

Listar exige dono ou membro; convidar também (papel ``owner`` só o dono
concede). Trocar papel, remover membro e revogar convite são do dono.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from quadro.api import deps
from quadro.models.project_member import ProjectMember
from quadro.models.user import AppUser
from quadro.schemas.project_invitation import (
    ProjectInvitationCreateRequest,
    ProjectInvitationCreateResponse,
    ProjectInvitationResponse,
)
from quadro.schemas.project_member import ProjectMemberResponse, ProjectMemberUpdateRequest
from quadro.services import invitations as invitation_service
from quadro.services import memberships
from quadro.services.authorization import AccessLevel, get_authorized_project

router = APIRouter(prefix="/projects/{project_id}", tags=["members"])


def build_member_response(member: ProjectMember, user: AppUser) -> ProjectMemberResponse:
    return ProjectMemberResponse(
        id=member.id,
        user_id=member.user_id,
        project_id=member.project_id,
        role=member.role,
        invited_by_user_id=member.invited_by_user_id,
        invited_at=member.invited_at,
        joined_at=member.joined_at,
        user_email=user.email,
        user_name=user.name,
    )


@router.get("/members", response_model=list[ProjectMemberResponse])
async def list_project_members(
    project_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> list[ProjectMemberResponse]:
    project = await get_authorized_project(db, project_id, current_user.id)
    rows = await memberships.list_members(db, project.id)
    return [build_member_response(member, user) for member, user in rows]


@router.patch("/members/{user_id}", response_model=ProjectMemberResponse)
async def update_project_member(
    project_id: UUID,
    user_id: UUID,
    payload: ProjectMemberUpdateRequest,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> ProjectMemberResponse:
    project = await get_authorized_project(db, project_id, current_user.id, AccessLevel.OWNER)
    member = await memberships.change_role(
        db,
        project=project,
        actor=current_user,
        target_user_id=user_id,
        new_role=payload.role,
    )
    user = await db.get(AppUser, member.user_id)
    return build_member_response(member, user)


@router.delete("/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def remove_project_member(
    project_id: UUID,
    user_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> Response:
    project = await get_authorized_project(db, project_id, current_user.id, AccessLevel.OWNER)
    await memberships.remove_member(db, project=project, actor=current_user, target_user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/invitations",
    response_model=ProjectInvitationCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_project_invitation(
    project_id: UUID,
    payload: ProjectInvitationCreateRequest,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> ProjectInvitationCreateResponse:
    project = await get_authorized_project(db, project_id, current_user.id)
    created = await invitation_service.create_invitation(
        db,
        project=project,
        inviter=current_user,
        email=payload.email,
        role=payload.role,
    )
    response = ProjectInvitationCreateResponse.model_validate(created.invitation)
    response.email_sent = created.email_sent
    response.warning = created.warning
    return response


@router.get("/invitations", response_model=list[ProjectInvitationResponse])
async def list_project_invitations(
    project_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> list[ProjectInvitationResponse]:
    project = await get_authorized_project(db, project_id, current_user.id)
    invitations = await invitation_service.list_project_invitations(db, project.id)
    return [ProjectInvitationResponse.model_validate(invitation) for invitation in invitations]


@router.delete(
    "/invitations/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def revoke_project_invitation(
    project_id: UUID,
    invitation_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> Response:
    project = await get_authorized_project(db, project_id, current_user.id, AccessLevel.OWNER)
    await invitation_service.revoke_invitation(db, project=project, invitation_id=invitation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
