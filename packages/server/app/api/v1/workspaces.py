"""
Workspace, member and invitation endpoints.

GET    /api/v1/workspaces                                  — Workspaces I own or belong to
POST   /api/v1/workspaces                                  — Create a workspace
GET    /api/v1/workspaces/{workspace_id}                   — Get workspace
PATCH  /api/v1/workspaces/{workspace_id}                   — Update name / image (admin)
POST   /api/v1/workspaces/{workspace_id}/image             — Upload workspace image (admin)
DELETE /api/v1/workspaces/{workspace_id}                   — Delete workspace (owner)
GET    /api/v1/workspaces/{workspace_id}/members           — List members
GET    /api/v1/workspaces/{workspace_id}/members/search    — Search members by name / email
PATCH  /api/v1/workspaces/{workspace_id}/members/{member_id} — Change a member's role (admin)
DELETE /api/v1/workspaces/{workspace_id}/members/{member_id} — Remove a member (admin)
POST   /api/v1/workspaces/{workspace_id}/invites           — Invite by email (admin)
GET    /api/v1/workspaces/{workspace_id}/invites           — Pending invites (admin)
POST   /api/v1/workspaces/{workspace_id}/join/{token}      — Accept an invitation
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    AuthenticatedUser,
    WorkspaceAccess,
    get_current_user,
    require_workspace_admin,
    require_workspace_member,
    require_workspace_owner,
)
from app.core.database import get_session
from app.services import images as image_service
from app.services import invitations as invite_service
from app.services import membership
from app.services import workspaces as workspace_service
from taskard_shared.schemas.common import APIResponse
from taskard_shared.schemas.workspaces import (
    InviteCreateRequest,
    InviteResponse,
    MemberResponse,
    MemberRoleUpdateRequest,
    PendingInviteResponse,
    WorkspaceCreateRequest,
    WorkspaceResponse,
    WorkspaceUpdateRequest,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Workspaces
# ---------------------------------------------------------------------------

@router.get("", response_model=APIResponse[List[WorkspaceResponse]], tags=["Workspaces"])
async def list_workspaces(
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    items = await workspace_service.list_user_workspaces(session, auth.user_id)
    return APIResponse(data=[workspace_service.to_response(ws, level) for ws, level in items])


@router.post(
    "", response_model=APIResponse[WorkspaceResponse], status_code=201, tags=["Workspaces"]
)
async def create_workspace(
    body: WorkspaceCreateRequest,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Create a workspace. The caller becomes its owner."""
    workspace = await workspace_service.create_workspace(session, body, auth.user_id)
    return APIResponse(data=workspace_service.to_response(workspace, membership.Authority.OWNER))


@router.get(
    "/{workspace_id}", response_model=APIResponse[WorkspaceResponse], tags=["Workspaces"]
)
async def get_workspace(access: WorkspaceAccess = Depends(require_workspace_member)):
    return APIResponse(data=workspace_service.to_response(access.workspace, access.authority))


@router.patch(
    "/{workspace_id}", response_model=APIResponse[WorkspaceResponse], tags=["Workspaces"]
)
async def update_workspace(
    body: WorkspaceUpdateRequest,
    access: WorkspaceAccess = Depends(require_workspace_admin),
    session: AsyncSession = Depends(get_session),
):
    workspace = await workspace_service.update_workspace(session, access.workspace, body)
    return APIResponse(data=workspace_service.to_response(workspace, access.authority))


@router.post(
    "/{workspace_id}/image",
    response_model=APIResponse[WorkspaceResponse],
    tags=["Workspaces"],
)
async def upload_workspace_image(
    file: UploadFile = File(...),
    access: WorkspaceAccess = Depends(require_workspace_admin),
    session: AsyncSession = Depends(get_session),
):
    data = await image_service.read_upload(file)
    url = await image_service.upload_image(
        data,
        content_type=file.content_type,
        filename=file.filename or "workspace",
        folder="taskard/workspaces",
    )
    workspace = await workspace_service.set_image(session, access.workspace, url)
    return APIResponse(data=workspace_service.to_response(workspace, access.authority))


@router.delete("/{workspace_id}", status_code=204, tags=["Workspaces"])
async def delete_workspace(
    access: WorkspaceAccess = Depends(require_workspace_owner),
    session: AsyncSession = Depends(get_session),
):
    """Delete the workspace with its projects, tasks, invites and memberships."""
    await workspace_service.delete_workspace_cascade(session, access.workspace_id)
    return None


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

@router.get(
    "/{workspace_id}/members",
    response_model=APIResponse[List[MemberResponse]],
    tags=["Members"],
)
async def list_members(
    access: WorkspaceAccess = Depends(require_workspace_member),
    session: AsyncSession = Depends(get_session),
):
    return APIResponse(data=await workspace_service.list_members(session, access.workspace))


@router.get(
    "/{workspace_id}/members/search",
    response_model=APIResponse[List[MemberResponse]],
    tags=["Members"],
)
async def search_members(
    q: str = Query(..., min_length=1, max_length=100),
    access: WorkspaceAccess = Depends(require_workspace_member),
    session: AsyncSession = Depends(get_session),
):
    """Substring match on name or email, used by assignee pickers."""
    return APIResponse(data=await workspace_service.search_members(session, access.workspace, q))


@router.patch(
    "/{workspace_id}/members/{member_id}",
    response_model=APIResponse[MemberResponse],
    tags=["Members"],
)
async def update_member_role(
    member_id: uuid.UUID,
    body: MemberRoleUpdateRequest,
    access: WorkspaceAccess = Depends(require_workspace_admin),
    session: AsyncSession = Depends(get_session),
):
    member = await workspace_service.update_member_role(
        session, access.workspace, member_id, body.role
    )
    return APIResponse(data=member)


@router.delete("/{workspace_id}/members/{member_id}", status_code=204, tags=["Members"])
async def remove_member(
    member_id: uuid.UUID,
    access: WorkspaceAccess = Depends(require_workspace_member),
    session: AsyncSession = Depends(get_session),
):
    await workspace_service.remove_member(session, access.workspace, access.authority, member_id)
    return None


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

@router.post(
    "/{workspace_id}/invites",
    response_model=APIResponse[InviteResponse],
    status_code=201,
    tags=["Invitations"],
)
async def create_invite(
    body: InviteCreateRequest,
    access: WorkspaceAccess = Depends(require_workspace_member),
    session: AsyncSession = Depends(get_session),
):
    """Email an invitation. Only id, email and role come back; never the token."""
    invite = await invite_service.issue_invite(
        session, access.workspace, access.user, access.authority, body
    )
    return APIResponse(data=InviteResponse(id=invite.id, email=invite.email, role=invite.role))


@router.get(
    "/{workspace_id}/invites",
    response_model=APIResponse[List[PendingInviteResponse]],
    tags=["Invitations"],
)
async def list_invites(
    access: WorkspaceAccess = Depends(require_workspace_admin),
    session: AsyncSession = Depends(get_session),
):
    invites = await invite_service.list_pending_invites(session, access.workspace)
    return APIResponse(
        data=[
            PendingInviteResponse(
                id=i.id,
                email=i.email,
                role=i.role,
                expires=i.expires,
                invited_by=i.invited_by,
            )
            for i in invites
        ]
    )


@router.post(
    "/{workspace_id}/join/{token}",
    response_model=APIResponse[MemberResponse],
    tags=["Invitations"],
)
async def accept_invite(
    workspace_id: uuid.UUID,
    token: str,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Join a workspace with the token from an invitation email."""
    member = await invite_service.accept_invite(session, auth.user, workspace_id, token)
    workspace = await membership.get_workspace(session, workspace_id)
    return APIResponse(data=workspace_service.member_response(workspace, member, auth.user))
