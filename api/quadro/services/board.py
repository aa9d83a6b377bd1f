"""
Operações do quadro: colunas e issues.

Todas recebem um projeto já autorizado (ver services.authorization).
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quadro.models.board_column import BoardColumn
from quadro.models.issue import Issue
from quadro.models.project import Project
from quadro.models.user import AppUser
from quadro.services.authorization import is_member, is_owner

logger = logging.getLogger("quadro.board")


async def get_board(db: AsyncSession, project: Project) -> list[tuple[BoardColumn, list[Issue]]]:
    columns_result = await db.execute(
        select(BoardColumn)
        .where(BoardColumn.project_id == project.id)
        .order_by(BoardColumn.position.asc())
    )
    columns = list(columns_result.scalars().all())

    issues_result = await db.execute(
        select(Issue)
        .where(Issue.project_id == project.id)
        .order_by(Issue.position.asc(), Issue.created_at.asc())
    )
    by_column: dict[uuid.UUID, list[Issue]] = {column.id: [] for column in columns}
    for issue in issues_result.scalars().all():
        by_column.setdefault(issue.column_id, []).append(issue)

    return [(column, by_column[column.id]) for column in columns]


async def _get_column(db: AsyncSession, project: Project, column_id: uuid.UUID) -> BoardColumn:
    column = await db.get(BoardColumn, column_id)
    if column is None or column.project_id != project.id:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Coluna não encontrada")
    return column


async def _get_issue(db: AsyncSession, project: Project, issue_id: uuid.UUID) -> Issue:
    issue = await db.get(Issue, issue_id)
    if issue is None or issue.project_id != project.id:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Issue não encontrada")
    return issue


async def _ensure_assignable(db: AsyncSession, project: Project, assignee_id: uuid.UUID | None) -> None:
    if assignee_id is None or is_owner(project, assignee_id):
        return
    if not await is_member(db, project.id, assignee_id):
        raise HTTPException(
            422,
            detail="Responsável precisa ser membro do projeto",
        )


async def _next_position(db: AsyncSession, column_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.max(Issue.position)).where(Issue.column_id == column_id)
    )
    current = result.scalar_one_or_none()
    return 0 if current is None else int(current) + 1


async def create_issue(
    db: AsyncSession,
    *,
    project: Project,
    reporter: AppUser,
    column_id: uuid.UUID,
    title: str,
    description: str | None = None,
    priority: str = "medium",
    assignee_id: uuid.UUID | None = None,
) -> Issue:
    column = await _get_column(db, project, column_id)
    await _ensure_assignable(db, project, assignee_id)

    issue = Issue(
        project_id=project.id,
        column_id=column.id,
        title=title,
        description=description,
        priority=priority,
        assignee_id=assignee_id,
        reporter_id=reporter.id,
        position=await _next_position(db, column.id),
    )
    db.add(issue)
    await db.commit()
    await db.refresh(issue)
    return issue


async def update_issue(
    db: AsyncSession,
    *,
    project: Project,
    issue_id: uuid.UUID,
    changes: dict[str, Any],
) -> Issue:
    """Aplica só os campos enviados. Mudar de coluna sem posição joga a issue no fim."""
    issue = await _get_issue(db, project, issue_id)

    if "assignee_id" in changes:
        await _ensure_assignable(db, project, changes["assignee_id"])
        issue.assignee_id = changes["assignee_id"]

    target_column_id = changes.get("column_id")
    if target_column_id is not None and target_column_id != issue.column_id:
        column = await _get_column(db, project, target_column_id)
        issue.column_id = column.id
        if changes.get("position") is None:
            issue.position = await _next_position(db, column.id)

    if changes.get("position") is not None:
        issue.position = changes["position"]

    for field in ("title", "description", "priority", "status"):
        if field in changes and (changes[field] is not None or field == "description"):
            setattr(issue, field, changes[field])

    await db.commit()
    await db.refresh(issue)
    return issue


async def delete_issue(db: AsyncSession, *, project: Project, issue_id: uuid.UUID) -> None:
    issue = await _get_issue(db, project, issue_id)
    await db.delete(issue)
    await db.commit()


async def delete_column(db: AsyncSession, *, project: Project, column_id: uuid.UUID) -> None:
    """Exclui a coluna e as issues dela. O chamador já exigiu o dono."""
    column = await _get_column(db, project, column_id)
    await db.delete(column)
    await db.commit()
    logger.info("Coluna %s excluída do projeto %s", column_id, project.id)
