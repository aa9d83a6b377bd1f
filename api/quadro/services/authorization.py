"""
Predicados de autorização por projeto.

Regras:
- Dono: ``project.owner_id`` igual ao usuário.
- Membro: existe ProjectMember (projeto, usuário) com ``joined_at`` preenchido.
- Operações de leitura e de trabalho no quadro exigem dono OU membro.
- Operações privilegiadas (remover membro, trocar papel, revogar convite,
  excluir coluna/projeto) exigem o dono.

Os predicados consultam as tabelas diretamente e recebem a identidade já
verificada; nunca passam pela camada de acesso que protegem.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from quadro.models.project import Project
from quadro.models.project_member import ProjectMember


class AccessLevel(str, enum.Enum):
    COLLABORATOR = "collaborator"
    OWNER = "owner"


@dataclass(frozen=True)
class AuthDecision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "AuthDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "AuthDecision":
        return cls(allowed=False, reason=reason)

    def ensure(self, detail: str = "Projeto não encontrado") -> None:
        """Converte uma negação em 404, igual a um recurso inexistente."""
        if not self.allowed:
            raise HTTPException(status.HTTP_404_NOT_FOUND, detail=detail)


def is_owner(project: Project, user_id: uuid.UUID) -> bool:
    return project.owner_id == user_id


async def is_member(db: AsyncSession, project_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(
            exists().where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
                ProjectMember.joined_at.is_not(None),
            )
        )
    )
    return bool(result.scalar())


async def authorize(
    db: AsyncSession,
    project: Project,
    user_id: uuid.UUID,
    level: AccessLevel = AccessLevel.COLLABORATOR,
) -> AuthDecision:
    if is_owner(project, user_id):
        return AuthDecision.allow()
    if level is AccessLevel.OWNER:
        return AuthDecision.deny("Apenas o dono do projeto pode realizar esta ação")
    if await is_member(db, project.id, user_id):
        return AuthDecision.allow()
    return AuthDecision.deny("Usuário não participa do projeto")


async def get_authorized_project(
    db: AsyncSession,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    level: AccessLevel = AccessLevel.COLLABORATOR,
) -> Project:
    """Busca o projeto e aplica o guard; ausência e falta de acesso dão o mesmo 404."""
    project = await db.get(Project, project_id)
    if project is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Projeto não encontrado")
    decision = await authorize(db, project, user_id, level)
    decision.ensure()
    return project
