from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

MemberRole = Literal["owner", "contributor"]


class ProjectMemberResponse(BaseModel):
    id: UUID
    user_id: UUID
    project_id: UUID
    role: MemberRole
    invited_by_user_id: Optional[UUID] = None
    invited_at: datetime
    joined_at: Optional[datetime] = None

    # User information (joined)
    user_email: str | None = None
    user_name: str | None = None

    class Config:
        from_attributes = True


class ProjectMemberUpdateRequest(BaseModel):
    role: MemberRole = Field(description="Novo papel do usuário no projeto (owner, contributor)")
