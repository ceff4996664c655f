"""
Project endpoints.

POST   /api/v1/workspaces/{workspace_id}/projects  — Create a project
GET    /api/v1/workspaces/{workspace_id}/projects  — List projects with task counts
GET    /api/v1/projects/{project_id}               — Get project with its tasks
PATCH  /api/v1/projects/{project_id}               — Update project
DELETE /api/v1/projects/{project_id}               — Delete project and every task in it
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    AuthenticatedUser,
    WorkspaceAccess,
    get_current_user,
    require_workspace_member,
)
from app.core.database import get_session
from app.services import access as access_service
from app.services import projects as project_service
from taskard_shared.schemas.common import APIResponse
from taskard_shared.schemas.projects import (
    ProjectCreate,
    ProjectDetail,
    ProjectRead,
    ProjectUpdate,
)

# Mounted under /workspaces/{workspace_id}/projects
workspace_router = APIRouter()
# Mounted under /projects
router = APIRouter()


@workspace_router.post(
    "", response_model=APIResponse[ProjectRead], status_code=201, tags=["Projects"]
)
async def create_project(
    body: ProjectCreate,
    access: WorkspaceAccess = Depends(require_workspace_member),
    session: AsyncSession = Depends(get_session),
):
    project = await project_service.create_project(session, access.workspace, access.user_id, body)
    return APIResponse(data=await project_service.project_to_read(session, project))


@workspace_router.get("", response_model=APIResponse[List[ProjectRead]], tags=["Projects"])
async def list_projects(
    access: WorkspaceAccess = Depends(require_workspace_member),
    session: AsyncSession = Depends(get_session),
):
    """All projects in the workspace, newest first."""
    return APIResponse(data=await project_service.list_projects(session, access.workspace_id))


@router.get("/{project_id}", response_model=APIResponse[ProjectDetail], tags=["Projects"])
async def get_project(
    project_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    chain = await access_service.require_project(session, auth.user_id, project_id)
    return APIResponse(data=await project_service.project_detail(session, chain.project))


@router.patch("/{project_id}", response_model=APIResponse[ProjectRead], tags=["Projects"])
async def update_project(
    project_id: uuid.UUID,
    body: ProjectUpdate,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    chain = await access_service.require_project(session, auth.user_id, project_id)
    project = await project_service.update_project(session, chain.project, body)
    return APIResponse(data=await project_service.project_to_read(session, project))


@router.delete("/{project_id}", status_code=204, tags=["Projects"])
async def delete_project(
    project_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Project creator or workspace admin only."""
    chain = await access_service.require_project(session, auth.user_id, project_id)
    access_service.ensure(access_service.can_delete_project(chain, auth.user_id))
    await project_service.delete_project_cascade(session, project_id)
    return None
