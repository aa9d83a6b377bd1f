from fastapi import APIRouter

from quadro.api.routers import auth, invitations, members, projects, users

api_router = APIRouter()


@api_router.get("/health", tags=["health"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(projects.router)
api_router.include_router(members.router)
api_router.include_router(invitations.router)
