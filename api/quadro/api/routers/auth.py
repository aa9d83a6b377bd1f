from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from quadro.api import deps
from quadro.core.security import clear_session, ensure_password_strength, establish_session, normalize_email
from quadro.models.user import AppUser
from quadro.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    ResendVerificationRequest,
    UserResponse,
    VerifyEmailRequest,
)
from quadro.services.auth import (
    authenticate_user,
    create_user,
    get_user_by_email,
    get_user_by_verification_token,
    issue_verification_token,
    mark_email_verified,
)
from quadro.services.email import DeliveryFailure, send_email_verification
from quadro.services.invitations import (
    InvalidOrExpiredInvitation,
    InvitationError,
    accept_invitation,
    get_pending_invitation_by_token,
)

logger = logging.getLogger("quadro.auth")

router = APIRouter(prefix="/auth", tags=["auth"])

GENERIC_RESEND_MESSAGE = "Se o email existir, um novo link de verificação foi enviado."


def build_user_response(user: AppUser, joined_project_id: Optional[uuid.UUID] = None) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        email_verified=user.email_verified,
        joined_project_id=joined_project_id,
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    payload: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(deps.get_db),
) -> UserResponse:
    """
    Cria uma conta.

    Com ``invite_token`` o email já é considerado verificado (o convite chegou
    nele), o convite é aceito na mesma transação e a sessão é aberta.
    Sem convite, um email de verificação é enviado e o login só é liberado
    depois da confirmação.
    """
    email = normalize_email(payload.email)
    if await get_user_by_email(db, email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="E-mail já cadastrado")

    ensure_password_strength(payload.password)

    if payload.invite_token:
        invitation = await get_pending_invitation_by_token(db, payload.invite_token)
        if invitation is None:
            raise HTTPException(status.HTTP_404_NOT_FOUND, detail=InvalidOrExpiredInvitation.message)
        if invitation.email != email:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST,
                detail=f"Este convite foi enviado para {invitation.email}. Use o email correto.",
            )

        user = await create_user(
            db,
            email=email,
            password=payload.password,
            name=payload.name,
            verified=True,
        )
        user_id = user.id
        try:
            project_id = await accept_invitation(db, payload.invite_token, user)
        except InvitationError as exc:
            # accept_invitation já desfez a transação, inclusive o usuário
            raise HTTPException(exc.status_code, detail=exc.message) from exc

        establish_session(request, user_id)
        logger.info("Usuário %s registrado via convite (projeto %s)", user_id, project_id)
        return build_user_response(user, joined_project_id=project_id)

    user = await create_user(
        db,
        email=email,
        password=payload.password,
        name=payload.name,
    )
    await db.commit()
    await db.refresh(user)

    try:
        await send_email_verification(
            to_email=user.email,
            verification_token=user.email_verification_token,
            user_name=user.name,
        )
    except DeliveryFailure:
        # O cadastro continua válido; o usuário pode pedir reenvio
        logger.warning("Falha ao enviar email de verificação para %s", user.email, exc_info=True)

    return build_user_response(user)


@router.post("/login", response_model=UserResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(deps.get_db),
) -> UserResponse:
    user = await authenticate_user(db, payload.email, payload.password)
    establish_session(request, user.id)
    return build_user_response(user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def logout(request: Request) -> Response:
    clear_session(request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/verify-email", status_code=status.HTTP_200_OK)
async def verify_email(
    payload: VerifyEmailRequest,
    db: AsyncSession = Depends(deps.get_db),
) -> dict[str, str]:
    """
    Verifica o email de um usuário usando o token enviado por email.
    """
    user = await get_user_by_verification_token(db, payload.token)
    if not user:
        raise HTTPException(
            status.HTTP_404_NOT_FOUND,
            detail="Token de verificação inválido ou expirado. Solicite um novo email de verificação."
        )

    mark_email_verified(user)
    await db.commit()

    return {"message": "Email verificado com sucesso! Você já pode fazer login."}


@router.post("/resend-verification", status_code=status.HTTP_200_OK)
async def resend_verification(
    payload: ResendVerificationRequest,
    db: AsyncSession = Depends(deps.get_db),
) -> dict[str, str]:
    """
    Reenvia o email de verificação para um usuário.
    """
    user = await get_user_by_email(db, payload.email)

    # Por segurança, não revela se o email existe ou se já foi verificado
    if not user or user.email_verified:
        return {"message": GENERIC_RESEND_MESSAGE}

    new_token = issue_verification_token(user)
    await db.commit()

    try:
        await send_email_verification(
            to_email=user.email,
            verification_token=new_token,
            user_name=user.name,
        )
    except DeliveryFailure as exc:
        logger.error("Falha ao reenviar verificação para %s", user.email, exc_info=True)
        raise HTTPException(
            status.HTTP_502_BAD_GATEWAY,
            detail="Erro ao enviar email de verificação. Tente novamente mais tarde."
        ) from exc

    return {"message": GENERIC_RESEND_MESSAGE}
