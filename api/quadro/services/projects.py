from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from quadro.core.config import settings
from quadro.models.board_column import BoardColumn
from quadro.models.project import Project
from quadro.models.project_member import ProjectMember
from quadro.models.user import AppUser
from quadro.services.memberships import enroll_owner

logger = logging.getLogger("quadro.projects")


async def create_project(
    db: AsyncSession,
    *,
    owner: AppUser,
    name: str,
    description: Optional[str] = None,
) -> Project:
    """
    Cria o projeto, inscreve o dono como membro e cria as colunas padrão.

    Tudo acontece em um único commit: ou o projeto nasce completo, ou não nasce.
    """
    now = datetime.now(timezone.utc)
    project = Project(name=name, description=description, owner_id=owner.id)
    db.add(project)
    await db.flush()

    enroll_owner(db, project, now)
    for position, column_name in enumerate(settings.default_columns):
        db.add(BoardColumn(project_id=project.id, name=column_name, position=position))

    await db.commit()
    await db.refresh(project)

    logger.info("Projeto %s criado por %s", project.id, owner.id)
    return project


async def list_projects_for_user(db: AsyncSession, user_id: uuid.UUID) -> list[Project]:
    member_of = select(ProjectMember.project_id).where(
        ProjectMember.user_id == user_id,
        ProjectMember.joined_at.is_not(None),
    )
    stmt = (
        select(Project)
        .where(or_(Project.owner_id == user_id, Project.id.in_(member_of)))
        .order_by(Project.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_project(db: AsyncSession, project: Project, changes: dict[str, Any]) -> Project:
    if changes.get("name") is not None:
        project.name = changes["name"]
    if "description" in changes:
        project.description = changes["description"]
    await db.commit()
    await db.refresh(project)
    return project


async def delete_project(db: AsyncSession, project: Project) -> None:
    project_id = project.id
    await db.delete(project)
    await db.commit()
    logger.info("Projeto %s excluído", project_id)
