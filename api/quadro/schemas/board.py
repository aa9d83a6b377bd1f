"""
Schemas do quadro kanban (colunas e issues).
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

IssuePriority = Literal["low", "medium", "high", "urgent"]
IssueStatus = Literal["todo", "in_progress", "done"]


class IssueResponse(BaseModel):
    id: UUID
    project_id: UUID
    column_id: UUID
    title: str
    description: Optional[str] = None
    priority: IssuePriority
    status: IssueStatus
    position: int
    assignee_id: Optional[UUID] = None
    reporter_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ColumnResponse(BaseModel):
    id: UUID
    project_id: UUID
    name: str
    position: int
    issues: list[IssueResponse] = Field(default_factory=list)


class BoardResponse(BaseModel):
    project_id: UUID
    columns: list[ColumnResponse]


class IssueCreateRequest(BaseModel):
    column_id: UUID
    title: str = Field(min_length=1, max_length=500)
    description: Optional[str] = None
    priority: IssuePriority = "medium"
    assignee_id: Optional[UUID] = None

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Título não pode ser vazio")
        return v.strip()


class IssueUpdateRequest(BaseModel):
    """Atualização parcial; mover de coluna é só trocar ``column_id``."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    priority: Optional[IssuePriority] = None
    status: Optional[IssueStatus] = None
    column_id: Optional[UUID] = None
    position: Optional[int] = Field(None, ge=0)
    assignee_id: Optional[UUID] = None
