"""
Workspace service: workspace CRUD and member management.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import AuthorizationError, NotFoundError
from app.models.base import LIKE_ESCAPE, contains_pattern, utcnow
from app.models.project import Project
from app.models.user import User
from app.models.workspace import Workspace
from app.models.workspace_invite import WorkspaceInvite
from app.models.workspace_member import WorkspaceMember
from app.services import membership
from app.services import projects as project_service
from app.services.membership import Authority
from taskard_shared.schemas.common import Role
from taskard_shared.schemas.users import UserSummary
from taskard_shared.schemas.workspaces import (
    MemberResponse,
    WorkspaceCreateRequest,
    WorkspaceResponse,
    WorkspaceUpdateRequest,
)

log = structlog.get_logger()

MEMBER_SEARCH_LIMIT = 10


def to_response(workspace: Workspace, authority: Authority) -> WorkspaceResponse:
    return WorkspaceResponse(
        id=workspace.id,
        name=workspace.name,
        image=workspace.image,
        owner_id=workspace.owner_id,
        authority=authority.name,
        created_at=workspace.created_at,
        updated_at=workspace.updated_at,
    )


# ---------------------------------------------------------------------------
# Workspace CRUD
# ---------------------------------------------------------------------------


async def create_workspace(
    session: AsyncSession, req: WorkspaceCreateRequest, owner_id: uuid.UUID
) -> Workspace:
    """Create a workspace; the owner also gets an ADMIN membership row."""
    workspace = Workspace(name=req.name, image=req.image, owner_id=owner_id)
    session.add(workspace)
    await session.flush()

    session.add(
        WorkspaceMember(user_id=owner_id, workspace_id=workspace.id, role=Role.ADMIN.value)
    )
    await session.flush()

    log.info("workspace.created", workspace_id=str(workspace.id), owner_id=str(owner_id))
    return workspace


async def list_user_workspaces(
    session: AsyncSession, user_id: uuid.UUID
) -> list[tuple[Workspace, Authority]]:
    """Workspaces the user owns or belongs to, with their authority in each."""
    result = await session.execute(
        select(Workspace, WorkspaceMember.role)
        .outerjoin(
            WorkspaceMember,
            (WorkspaceMember.workspace_id == Workspace.id)
            & (WorkspaceMember.user_id == user_id),
        )
        .where(or_(Workspace.owner_id == user_id, WorkspaceMember.user_id == user_id))
        .order_by(Workspace.created_at)
    )
    items = []
    for workspace, role in result.all():
        owner = Authority.OWNER if workspace.owner_id == user_id else Authority.NONE
        row = membership.ROLE_AUTHORITY.get(role, Authority.NONE) if role else Authority.NONE
        items.append((workspace, max(owner, row)))
    return items


async def update_workspace(
    session: AsyncSession, workspace: Workspace, req: WorkspaceUpdateRequest
) -> Workspace:
    if req.name is not None:
        workspace.name = req.name.strip()
    if "image" in req.model_fields_set:
        workspace.image = req.image
    workspace.updated_at = utcnow()
    session.add(workspace)
    await session.flush()
    log.info("workspace.updated", workspace_id=str(workspace.id))
    return workspace


async def set_image(session: AsyncSession, workspace: Workspace, image_url: str) -> Workspace:
    workspace.image = image_url
    workspace.updated_at = utcnow()
    session.add(workspace)
    await session.flush()
    return workspace


async def delete_workspace_cascade(session: AsyncSession, workspace_id: uuid.UUID) -> None:
    """Remove a workspace with its projects, tasks, invites and memberships."""
    result = await session.execute(select(Project.id).where(Project.workspace_id == workspace_id))
    for (project_id,) in result.all():
        await project_service.delete_project_cascade(session, project_id)

    await session.execute(delete(WorkspaceInvite).where(WorkspaceInvite.workspace_id == workspace_id))
    await session.execute(delete(WorkspaceMember).where(WorkspaceMember.workspace_id == workspace_id))
    await session.execute(delete(Workspace).where(Workspace.id == workspace_id))
    await session.flush()
    log.info("workspace.deleted", workspace_id=str(workspace_id))


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


def member_response(workspace: Workspace, member: WorkspaceMember, user: User) -> MemberResponse:
    return MemberResponse(
        id=member.id,
        workspace_id=member.workspace_id,
        role=Role(member.role),
        is_owner=member.user_id == workspace.owner_id,
        user=UserSummary(id=user.id, name=user.name, email=user.email, image=user.image),
        joined_at=member.created_at,
    )


async def list_members(session: AsyncSession, workspace: Workspace) -> list[MemberResponse]:
    result = await session.execute(
        select(WorkspaceMember, User)
        .join(User, User.id == WorkspaceMember.user_id)
        .where(WorkspaceMember.workspace_id == workspace.id)
        .order_by(WorkspaceMember.created_at)
    )
    return [member_response(workspace, m, u) for m, u in result.all()]


async def search_members(
    session: AsyncSession, workspace: Workspace, query: str
) -> list[MemberResponse]:
    """Case-insensitive substring match on name or email, at most ten results."""
    pattern = contains_pattern(query)
    result = await session.execute(
        select(WorkspaceMember, User)
        .join(User, User.id == WorkspaceMember.user_id)
        .where(
            WorkspaceMember.workspace_id == workspace.id,
            or_(
                func.lower(User.name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(User.email).like(pattern, escape=LIKE_ESCAPE),
            ),
        )
        .order_by(User.name)
        .limit(MEMBER_SEARCH_LIMIT)
    )
    return [member_response(workspace, m, u) for m, u in result.all()]


async def _get_member(
    session: AsyncSession, workspace: Workspace, member_id: uuid.UUID
) -> WorkspaceMember:
    result = await session.execute(
        select(WorkspaceMember).where(
            WorkspaceMember.id == member_id,
            WorkspaceMember.workspace_id == workspace.id,
        )
    )
    member = result.scalar_one_or_none()
    if not member:
        raise NotFoundError("Member not found")
    return member


async def update_member_role(
    session: AsyncSession, workspace: Workspace, member_id: uuid.UUID, role: Role
) -> MemberResponse:
    member = await _get_member(session, workspace, member_id)
    if member.user_id == workspace.owner_id:
        raise AuthorizationError("Cannot change the role of the workspace owner")

    member.role = role.value
    session.add(member)
    await session.flush()

    user = await session.get(User, member.user_id)
    log.info(
        "workspace.member_role_changed",
        workspace_id=str(workspace.id),
        member_id=str(member.id),
        role=role.value,
    )
    return member_response(workspace, member, user)


async def remove_member(
    session: AsyncSession, workspace: Workspace, actor: Authority, member_id: uuid.UUID
) -> None:
    member = await _get_member(session, workspace, member_id)
    if member.user_id == workspace.owner_id:
        raise AuthorizationError("Cannot remove workspace owner")
    if not membership.can_remove_member(actor, member.user_id, workspace):
        raise AuthorizationError("You do not have permission to remove members")

    await session.delete(member)
    await session.flush()
    log.info(
        "workspace.member_removed",
        workspace_id=str(workspace.id),
        user_id=str(member.user_id),
    )
