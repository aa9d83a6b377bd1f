from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from quadro.api import deps
from quadro.models.project import Project
from quadro.models.user import AppUser
from quadro.schemas.board import (
    BoardResponse,
    ColumnResponse,
    IssueCreateRequest,
    IssueResponse,
    IssueUpdateRequest,
)
from quadro.schemas.project import ProjectCreateRequest, ProjectResponse, ProjectUpdateRequest
from quadro.services import board as board_service
from quadro.services import projects as project_service
from quadro.services.authorization import AccessLevel, get_authorized_project, is_owner

router = APIRouter(prefix="/projects", tags=["projects"])


def build_project_response(project: Project, user: AppUser) -> ProjectResponse:
    response = ProjectResponse.model_validate(project)
    response.is_owner = is_owner(project, user.id)
    return response


@router.get("", response_model=list[ProjectResponse])
async def list_projects(
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> list[ProjectResponse]:
    projects = await project_service.list_projects_for_user(db, current_user.id)
    return [build_project_response(project, current_user) for project in projects]


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreateRequest,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> ProjectResponse:
    project = await project_service.create_project(
        db,
        owner=current_user,
        name=payload.name,
        description=payload.description,
    )
    return build_project_response(project, current_user)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> ProjectResponse:
    project = await get_authorized_project(db, project_id, current_user.id)
    return build_project_response(project, current_user)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    payload: ProjectUpdateRequest,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> ProjectResponse:
    project = await get_authorized_project(db, project_id, current_user.id, AccessLevel.OWNER)
    project = await project_service.update_project(db, project, payload.model_dump(exclude_unset=True))
    return build_project_response(project, current_user)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_project(
    project_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> Response:
    project = await get_authorized_project(db, project_id, current_user.id, AccessLevel.OWNER)
    await project_service.delete_project(db, project)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Quadro (colunas e issues)
# ============================================================================


@router.get("/{project_id}/board", response_model=BoardResponse)
async def get_board(
    project_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> BoardResponse:
    project = await get_authorized_project(db, project_id, current_user.id)
    columns = await board_service.get_board(db, project)
    return BoardResponse(
        project_id=project.id,
        columns=[
            ColumnResponse(
                id=column.id,
                project_id=column.project_id,
                name=column.name,
                position=column.position,
                issues=[IssueResponse.model_validate(issue) for issue in issues],
            )
            for column, issues in columns
        ],
    )


@router.delete(
    "/{project_id}/columns/{column_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_column(
    project_id: UUID,
    column_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> Response:
    project = await get_authorized_project(db, project_id, current_user.id, AccessLevel.OWNER)
    await board_service.delete_column(db, project=project, column_id=column_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/issues", response_model=IssueResponse, status_code=status.HTTP_201_CREATED)
async def create_issue(
    project_id: UUID,
    payload: IssueCreateRequest,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> IssueResponse:
    project = await get_authorized_project(db, project_id, current_user.id)
    issue = await board_service.create_issue(
        db,
        project=project,
        reporter=current_user,
        column_id=payload.column_id,
        title=payload.title,
        description=payload.description,
        priority=payload.priority,
        assignee_id=payload.assignee_id,
    )
    return IssueResponse.model_validate(issue)


@router.patch("/{project_id}/issues/{issue_id}", response_model=IssueResponse)
async def update_issue(
    project_id: UUID,
    issue_id: UUID,
    payload: IssueUpdateRequest,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> IssueResponse:
    project = await get_authorized_project(db, project_id, current_user.id)
    issue = await board_service.update_issue(
        db,
        project=project,
        issue_id=issue_id,
        changes=payload.model_dump(exclude_unset=True),
    )
    return IssueResponse.model_validate(issue)


@router.delete(
    "/{project_id}/issues/{issue_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_issue(
    project_id: UUID,
    issue_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    current_user: AppUser = Depends(deps.get_current_user),
) -> Response:
    project = await get_authorized_project(db, project_id, current_user.id)
    await board_service.delete_issue(db, project=project, issue_id=issue_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
