from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quadro.core.config import settings
from quadro.core.security import generate_verification_token, hash_password, normalize_email, verify_password
from quadro.models.user import AppUser

logger = logging.getLogger("quadro.auth")


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[AppUser]:
    stmt = select(AppUser).where(AppUser.email == normalize_email(email))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def issue_verification_token(user: AppUser) -> str:
    token = generate_verification_token()
    user.email_verification_token = token
    user.email_verification_token_expires = datetime.now(timezone.utc) + timedelta(
        hours=settings.email_verification_ttl_hours
    )
    return token


def mark_email_verified(user: AppUser) -> None:
    user.email_verified = True
    user.email_verification_token = None
    user.email_verification_token_expires = None


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    name: Optional[str] = None,
    verified: bool = False,
) -> AppUser:
    user = AppUser(
        email=normalize_email(email),
        password_hash=hash_password(password),
        name=name,
        email_verified=False,
    )
    if verified:
        mark_email_verified(user)
    else:
        issue_verification_token(user)

    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            detail="E-mail já cadastrado.",
        ) from exc
    return user


async def get_user_by_verification_token(db: AsyncSession, token: str) -> Optional[AppUser]:
    """Só devolve o usuário se o token ainda estiver dentro da validade."""
    stmt = select(AppUser).where(
        AppUser.email_verification_token == token,
        AppUser.email_verification_token_expires > datetime.now(timezone.utc),
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def authenticate_user(db: AsyncSession, email: str, password: str) -> AppUser:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Credenciais inválidas")

    # Verificar se o email foi confirmado
    if not user.email_verified:
        raise HTTPException(
            status.HTTP_403_FORBIDDEN,
            detail="Email não verificado. Por favor, verifique seu email antes de fazer login."
        )

    return user
