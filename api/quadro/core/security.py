from __future__ import annotations

import secrets
import uuid
from typing import Optional

from argon2 import PasswordHasher, exceptions as argon2_exceptions
from fastapi import HTTPException, Request

password_hasher = PasswordHasher()


def hash_password(plain_password: str) -> str:
    return password_hasher.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        password_hasher.verify(hashed_password, plain_password)
        return True
    except argon2_exceptions.VerifyMismatchError:
        return False
    except argon2_exceptions.VerificationError:
        return False
    except argon2_exceptions.InvalidHashError:
        return False


def generate_verification_token() -> str:
    """Token opaco de 256 bits, seguro para URL."""
    return secrets.token_urlsafe(32)


def normalize_email(email: str) -> str:
    return email.strip().lower()


SESSION_USER_KEY = "user_id"


def establish_session(request: Request, user_id: uuid.UUID | str) -> None:
    request.session[SESSION_USER_KEY] = str(user_id)


def clear_session(request: Request) -> None:
    request.session.pop(SESSION_USER_KEY, None)


def current_session_user_id(request: Request) -> Optional[uuid.UUID]:
    raw = request.session.get(SESSION_USER_KEY)
    if not raw:
        return None
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


def ensure_password_strength(password: str) -> None:
    if len(password) < 8:
        raise HTTPException(
            422,
            detail="Senha deve possuir ao menos 8 caracteres.",
        )
