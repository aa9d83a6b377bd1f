from __future__ import annotations

from fastapi import APIRouter, Depends

from quadro.api import deps
from quadro.api.routers.auth import build_user_response
from quadro.models.user import AppUser
from quadro.schemas.auth import UserResponse

router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserResponse)
async def read_current_user(current_user: AppUser = Depends(deps.get_current_user)) -> UserResponse:
    return build_user_response(current_user)
