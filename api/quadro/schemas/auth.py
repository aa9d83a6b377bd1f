from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    name: Optional[str] = Field(default=None, max_length=255)
    invite_token: Optional[str] = Field(
        default=None,
        min_length=16,
        max_length=64,
        pattern=r"^[A-Za-z0-9_\-]+$",
        description="Token do convite recebido por email (opcional)",
    )


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: UUID
    email: EmailStr
    name: Optional[str] = None
    email_verified: bool = False
    # Preenchido quando o registro consumiu um convite
    joined_project_id: Optional[UUID] = None

    class Config:
        from_attributes = True


class VerifyEmailRequest(BaseModel):
    token: str = Field(min_length=1, description="Token de verificação recebido por email")


class ResendVerificationRequest(BaseModel):
    email: EmailStr
