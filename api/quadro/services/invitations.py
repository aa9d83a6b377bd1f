"""
Ciclo de vida dos convites de projeto.

Estados por (projeto, email): ausente -> pendente -> aceito | expirado | revogado.

- Criar um convite apaga, na mesma transação, qualquer convite pendente para
  o mesmo (projeto, email). O índice único parcial
  ``uq_project_invitation_pending_email`` garante que dois pedidos
  concorrentes não deixem dois tokens vivos; quem perder a corrida tenta de novo.
- Expiração é avaliada na leitura (``expires_at > agora``); não há varredura.
- Aceitar marca ``accepted_at`` com um UPDATE condicional e faz upsert do
  membro no mesmo commit. Só uma tentativa concorrente consegue o UPDATE.
- Falha no envio do email não desfaz o convite; o chamador recebe um aviso.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quadro.core.config import settings
from quadro.core.security import generate_verification_token, normalize_email
from quadro.models.project import Project
from quadro.models.project_invitation import ProjectInvitation
from quadro.models.user import AppUser
from quadro.services import memberships
from quadro.services.authorization import AuthDecision, is_owner
from quadro.services.email import DeliveryFailure, send_invitation_email

logger = logging.getLogger("quadro.invitations")

SUPERSEDE_MAX_ATTEMPTS = 3

DELIVERY_WARNING = (
    "Convite criado, mas o email não pôde ser enviado. "
    "Compartilhe o link de aceite manualmente."
)
SMTP_DISABLED_WARNING = "Convite criado, mas o envio de emails não está configurado."


class InvitationError(Exception):
    code = "invitation_error"
    message = "Erro ao processar o convite"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: Optional[str] = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidOrExpiredInvitation(InvitationError):
    code = "invalid_or_expired"
    message = "Convite inválido ou expirado"
    status_code = status.HTTP_404_NOT_FOUND


class EmailMismatch(InvitationError):
    code = "email_mismatch"
    message = "Este convite foi enviado para outro email. Entre com a conta correta."
    status_code = status.HTTP_403_FORBIDDEN


class AlreadyAccepted(InvitationError):
    code = "already_accepted"
    message = "Este convite já foi aceito"
    status_code = status.HTTP_409_CONFLICT


@dataclass
class CreatedInvitation:
    invitation: ProjectInvitation
    email_sent: bool
    warning: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_acceptance_url(token: str) -> str:
    return f"{settings.frontend_url}/accept-invitation?token={token}"


def _pending_clause(now: datetime):
    return (
        ProjectInvitation.accepted_at.is_(None),
        ProjectInvitation.expires_at > now,
    )


async def get_pending_invitation_by_token(db: AsyncSession, token: str) -> ProjectInvitation | None:
    stmt = select(ProjectInvitation).where(
        ProjectInvitation.token == token,
        *_pending_clause(_utcnow()),
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_invitation_preview(
    db: AsyncSession, token: str
) -> tuple[ProjectInvitation, Project, AppUser] | None:
    """Convite pendente com o projeto e quem convidou, para a página de aceite."""
    stmt = (
        select(ProjectInvitation, Project, AppUser)
        .join(Project, ProjectInvitation.project_id == Project.id)
        .join(AppUser, ProjectInvitation.invited_by_user_id == AppUser.id)
        .where(ProjectInvitation.token == token, *_pending_clause(_utcnow()))
    )
    result = await db.execute(stmt)
    row = result.first()
    if row is None:
        return None
    return row[0], row[1], row[2]


async def list_project_invitations(db: AsyncSession, project_id: uuid.UUID) -> list[ProjectInvitation]:
    stmt = (
        select(ProjectInvitation)
        .where(ProjectInvitation.project_id == project_id, *_pending_clause(_utcnow()))
        .order_by(ProjectInvitation.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_received_invitations(
    db: AsyncSession, user: AppUser
) -> list[tuple[ProjectInvitation, Project, AppUser]]:
    stmt = (
        select(ProjectInvitation, Project, AppUser)
        .join(Project, ProjectInvitation.project_id == Project.id)
        .join(AppUser, ProjectInvitation.invited_by_user_id == AppUser.id)
        .where(
            ProjectInvitation.email == normalize_email(user.email),
            *_pending_clause(_utcnow()),
        )
        .order_by(ProjectInvitation.created_at.desc())
    )
    result = await db.execute(stmt)
    return [(invitation, project, inviter) for invitation, project, inviter in result.all()]


def authorize_invitation_role(project: Project, inviter: AppUser, role: str) -> AuthDecision:
    """Colaboradores podem convidar, mas só o dono concede o papel ``owner``."""
    if role == "owner" and not is_owner(project, inviter.id):
        return AuthDecision.deny("Apenas o dono do projeto pode convidar com papel de dono")
    return AuthDecision.allow()


async def _supersede_and_insert(
    db: AsyncSession,
    *,
    project_id: uuid.UUID,
    email: str,
    role: str,
    inviter_id: uuid.UUID,
) -> ProjectInvitation:
    last_error: IntegrityError | None = None
    for attempt in range(1, SUPERSEDE_MAX_ATTEMPTS + 1):
        now = _utcnow()
        stale = (
            delete(ProjectInvitation)
            .where(
                ProjectInvitation.project_id == project_id,
                ProjectInvitation.email == email,
                ProjectInvitation.accepted_at.is_(None),
            )
            .execution_options(synchronize_session=False)
        )
        superseded = (await db.execute(stale)).rowcount
        invitation = ProjectInvitation(
            project_id=project_id,
            email=email,
            role=role,
            invited_by_user_id=inviter_id,
            token=generate_verification_token(),
            expires_at=now + timedelta(days=settings.invitation_ttl_days),
        )
        db.add(invitation)
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            last_error = exc
            logger.warning(
                "Conflito ao substituir convite de %s no projeto %s (tentativa %s/%s)",
                email,
                project_id,
                attempt,
                SUPERSEDE_MAX_ATTEMPTS,
            )
            continue
        if superseded:
            logger.info("Convite pendente de %s no projeto %s substituído", email, project_id)
        await db.refresh(invitation)
        return invitation

    raise HTTPException(
        status.HTTP_409_CONFLICT,
        detail="Outro convite para este email está sendo criado. Tente novamente.",
    ) from last_error


async def create_invitation(
    db: AsyncSession,
    *,
    project: Project,
    inviter: AppUser,
    email: str,
    role: str,
) -> CreatedInvitation:
    """
    Cria (ou substitui) o convite pendente de ``email`` e dispara o email.

    O chamador já validou que ``inviter`` é dono ou membro do projeto.
    """
    authorize_invitation_role(project, inviter, role).ensure()

    # rollback expira os objetos da sessão; guardar o necessário antes
    project_id = project.id
    project_name = project.name
    inviter_id = inviter.id
    inviter_name = inviter.display_name
    invited_email = normalize_email(email)

    if await memberships.email_is_member(db, project_id, invited_email):
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            detail="Este usuário já é membro do projeto",
        )

    invitation = await _supersede_and_insert(
        db,
        project_id=project_id,
        email=invited_email,
        role=role,
        inviter_id=inviter_id,
    )
    logger.info("Convite %s criado para %s no projeto %s", invitation.id, invited_email, project_id)

    try:
        delivered = await send_invitation_email(
            to_email=invited_email,
            role=role,
            project_name=project_name,
            inviter_name=inviter_name,
            acceptance_url=build_acceptance_url(invitation.token),
        )
    except DeliveryFailure:
        logger.warning("Falha ao enviar email do convite %s", invitation.id, exc_info=True)
        return CreatedInvitation(invitation=invitation, email_sent=False, warning=DELIVERY_WARNING)

    if not delivered:
        return CreatedInvitation(invitation=invitation, email_sent=False, warning=SMTP_DISABLED_WARNING)
    return CreatedInvitation(invitation=invitation, email_sent=True)


async def revoke_invitation(db: AsyncSession, *, project: Project, invitation_id: uuid.UUID) -> None:
    """Remove um convite ainda não aceito. Convites aceitos são históricos e ficam."""
    result = await db.execute(
        delete(ProjectInvitation)
        .where(
            ProjectInvitation.id == invitation_id,
            ProjectInvitation.project_id == project.id,
            ProjectInvitation.accepted_at.is_(None),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Convite não encontrado")
    await db.commit()
    logger.info("Convite %s revogado no projeto %s", invitation_id, project.id)


async def _classify_unusable_token(db: AsyncSession, token: str) -> InvitationError:
    stmt = select(ProjectInvitation.accepted_at).where(ProjectInvitation.token == token)
    result = await db.execute(stmt)
    row = result.first()
    if row is not None and row[0] is not None:
        return AlreadyAccepted()
    return InvalidOrExpiredInvitation()


async def accept_invitation(db: AsyncSession, token: str, user: AppUser) -> uuid.UUID:
    """
    Consome o convite e transforma o email convidado em membro.

    Retorna o id do projeto. Levanta ``InvalidOrExpiredInvitation``,
    ``EmailMismatch`` ou ``AlreadyAccepted``; em nenhum caso o convite é
    apagado, e no ``EmailMismatch`` ele continua pendente.
    """
    user_id = user.id
    user_email = normalize_email(user.email)

    invitation = await get_pending_invitation_by_token(db, token)
    if invitation is None:
        raise await _classify_unusable_token(db, token)

    invitation_id = invitation.id
    project_id = invitation.project_id
    role = invitation.role
    invited_by_user_id = invitation.invited_by_user_id

    if invitation.email != user_email:
        logger.info("Convite %s recusado: email %s não confere", invitation_id, user_email)
        raise EmailMismatch()

    now = _utcnow()
    try:
        claimed = await db.execute(
            update(ProjectInvitation)
            .where(ProjectInvitation.id == invitation_id, *_pending_clause(now))
            .values(accepted_at=now)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            await db.rollback()
            raise await _classify_unusable_token(db, token)

        await memberships.upsert_membership(
            db,
            project_id=project_id,
            user_id=user_id,
            role=role,
            invited_by_user_id=invited_by_user_id,
            joined_at=now,
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.error("Erro ao aceitar convite %s", invitation_id, exc_info=True)
        raise

    logger.info("Convite %s aceito por %s (projeto %s, papel %s)", invitation_id, user_id, project_id, role)
    return project_id
