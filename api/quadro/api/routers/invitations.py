from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from quadro.api import deps
from quadro.models.user import AppUser
from quadro.schemas.project_invitation import (
    AcceptInvitationRequest,
    AcceptInvitationResponse,
    InvitationPreviewResponse,
    ReceivedInvitationResponse,
)
from quadro.services import invitations as invitation_service
from quadro.services.invitations import InvitationError

router = APIRouter(prefix="/invitations", tags=["invitations"])


# /received precisa vir antes de /{token}
@router.get("/received", response_model=list[ReceivedInvitationResponse])
async def list_received_invitations(
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> list[ReceivedInvitationResponse]:
    rows = await invitation_service.list_received_invitations(db, current_user)
    return [
        ReceivedInvitationResponse(
            id=invitation.id,
            project_id=project.id,
            project_name=project.name,
            email=invitation.email,
            role=invitation.role,
            invited_by_name=inviter.display_name,
            expires_at=invitation.expires_at,
        )
        for invitation, project, inviter in rows
    ]


@router.post("/accept", response_model=AcceptInvitationResponse)
async def accept_invitation(
    payload: AcceptInvitationRequest,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> AcceptInvitationResponse:
    """
    Aceita um convite com o usuário da sessão.

    Falhas de convite (inválido, expirado, email diferente, já aceito) voltam
    com ``success=false`` e ``error_code``; a página de aceite decide o que exibir.
    """
    try:
        project_id = await invitation_service.accept_invitation(db, payload.token, current_user)
    except InvitationError as exc:
        return AcceptInvitationResponse(success=False, error=exc.message, error_code=exc.code)
    return AcceptInvitationResponse(success=True, project_id=project_id)


@router.get("/{token}", response_model=InvitationPreviewResponse)
async def preview_invitation(
    token: str,
    db: AsyncSession = Depends(deps.get_db),
) -> InvitationPreviewResponse:
    """Dados públicos do convite para a página de aceite (antes do login)."""
    found = await invitation_service.get_invitation_preview(db, token)
    if found is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Convite inválido ou expirado")
    invitation, project, inviter = found
    return InvitationPreviewResponse(
        project_id=project.id,
        project_name=project.name,
        email=invitation.email,
        role=invitation.role,
        invited_by_name=inviter.display_name,
        expires_at=invitation.expires_at,
    )
