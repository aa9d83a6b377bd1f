from __future__ import annotations

import logging
import uuid
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from quadro.models.project import Project
from quadro.models.project_member import MEMBER_ROLES, ProjectMember
from quadro.models.user import AppUser

logger = logging.getLogger("quadro.memberships")

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def enroll_owner(db: AsyncSession, project: Project, now: datetime) -> ProjectMember:
    """Adiciona o dono como membro ativo; chamado na mesma transação que cria o projeto."""
    member = ProjectMember(
        project_id=project.id,
        user_id=project.owner_id,
        role="owner",
        invited_by_user_id=project.owner_id,
        invited_at=now,
        joined_at=now,
    )
    db.add(member)
    return member


async def upsert_membership(
    db: AsyncSession,
    *,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    role: str,
    invited_by_user_id: uuid.UUID | None,
    joined_at: datetime,
) -> None:
    """
    Cria ou reativa o vínculo (projeto, usuário) em um único comando.

    Usa INSERT ... ON CONFLICT na chave única (project_id, user_id); em
    conflito atualiza ``role``, quem convidou e ``joined_at``. Não faz commit.
    """
    if role not in MEMBER_ROLES:
        raise ValueError(f"Papel inválido: {role}")

    dialect = db.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Dialeto sem suporte a upsert: {dialect}")

    stmt = insert(ProjectMember).values(
        id=uuid.uuid4(),
        project_id=project_id,
        user_id=user_id,
        role=role,
        invited_by_user_id=invited_by_user_id,
        invited_at=joined_at,
        joined_at=joined_at,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[ProjectMember.project_id, ProjectMember.user_id],
        set_={
            "role": stmt.excluded.role,
            "invited_by_user_id": stmt.excluded.invited_by_user_id,
            "joined_at": stmt.excluded.joined_at,
            "updated_at": func.now(),
        },
    )
    await db.execute(stmt)


async def get_active_membership(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> ProjectMember | None:
    stmt = select(ProjectMember).where(
        ProjectMember.project_id == project_id,
        ProjectMember.user_id == user_id,
        ProjectMember.joined_at.is_not(None),
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_members(db: AsyncSession, project_id: uuid.UUID) -> list[tuple[ProjectMember, AppUser]]:
    stmt = (
        select(ProjectMember, AppUser)
        .join(AppUser, ProjectMember.user_id == AppUser.id)
        .where(
            ProjectMember.project_id == project_id,
            ProjectMember.joined_at.is_not(None),
        )
        .order_by(ProjectMember.joined_at.asc())
    )
    result = await db.execute(stmt)
    return [(member, user) for member, user in result.all()]


async def email_is_member(db: AsyncSession, project_id: uuid.UUID, email: str) -> bool:
    stmt = (
        select(func.count(ProjectMember.id))
        .join(AppUser, ProjectMember.user_id == AppUser.id)
        .where(
            AppUser.email == email,
            ProjectMember.project_id == project_id,
            ProjectMember.joined_at.is_not(None),
        )
    )
    result = await db.execute(stmt)
    return int(result.scalar_one()) > 0


def _reject_self_target(actor: AppUser, target_user_id: uuid.UUID, detail: str) -> None:
    if actor.id == target_user_id:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=detail)


async def change_role(
    db: AsyncSession,
    *,
    project: Project,
    actor: AppUser,
    target_user_id: uuid.UUID,
    new_role: str,
) -> ProjectMember:
    """
    Troca o papel de um membro. O chamador já deve ter validado que ``actor``
    é o dono. Alterar o próprio papel é bloqueado para não deixar o projeto
    sem dono.
    """
    _reject_self_target(actor, target_user_id, "Você não pode alterar o seu próprio papel")
    if new_role not in MEMBER_ROLES:
        raise HTTPException(
            422,
            detail=f"Papel inválido. Use um dos seguintes: {', '.join(MEMBER_ROLES)}",
        )

    member = await get_active_membership(db, project.id, target_user_id)
    if member is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Membro não encontrado neste projeto")

    member.role = new_role
    await db.commit()
    await db.refresh(member)

    logger.info("Papel de %s no projeto %s alterado para %s", target_user_id, project.id, new_role)
    return member


async def remove_member(
    db: AsyncSession,
    *,
    project: Project,
    actor: AppUser,
    target_user_id: uuid.UUID,
) -> None:
    """Remove um membro; o dono não pode remover a si mesmo."""
    _reject_self_target(actor, target_user_id, "Você não pode remover a si mesmo do projeto")

    stmt = select(ProjectMember).where(
        ProjectMember.project_id == project.id,
        ProjectMember.user_id == target_user_id,
    )
    result = await db.execute(stmt)
    member = result.scalar_one_or_none()
    if member is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Membro não encontrado neste projeto")

    await db.delete(member)
    await db.commit()

    logger.info("Membro %s removido do projeto %s", target_user_id, project.id)
