from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from quadro.schemas.project_member import MemberRole

TOKEN_PATTERN = r"^[A-Za-z0-9_\-]+$"


class ProjectInvitationCreateRequest(BaseModel):
    email: EmailStr = Field(description="Email da pessoa convidada")
    role: MemberRole = Field(default="contributor", description="Papel no projeto (owner, contributor)")


class ProjectInvitationResponse(BaseModel):
    id: UUID
    project_id: UUID
    email: str
    role: MemberRole
    invited_by_user_id: UUID
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ProjectInvitationCreateResponse(ProjectInvitationResponse):
    email_sent: bool = True
    warning: Optional[str] = None


class ReceivedInvitationResponse(BaseModel):
    id: UUID
    project_id: UUID
    project_name: str
    email: str
    role: MemberRole
    invited_by_name: Optional[str] = None
    expires_at: datetime


class InvitationPreviewResponse(BaseModel):
    project_id: UUID
    project_name: str
    email: str
    role: MemberRole
    invited_by_name: Optional[str] = None
    expires_at: datetime


class AcceptInvitationRequest(BaseModel):
    token: str = Field(min_length=16, max_length=64, pattern=TOKEN_PATTERN)


class AcceptInvitationResponse(BaseModel):
    success: bool
    project_id: Optional[UUID] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
