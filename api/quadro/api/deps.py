from __future__ import annotations

from typing import AsyncIterator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from quadro.core.security import current_session_user_id
from quadro.db.session import SessionLocal
from quadro.models.user import AppUser


async def get_db() -> AsyncIterator[AsyncSession]:
    async with SessionLocal() as session:
        yield session


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AppUser:
    user_id = current_session_user_id(request)
    if user_id is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Sessão inválida")

    user = await db.get(AppUser, user_id)
    if not user:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Usuário não encontrado")
    return user
