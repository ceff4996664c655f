"""
Membership authority: who may do what inside a workspace.

Authority is recomputed from the database on every call. It is the
maximum of the ownership check and the caller's membership row, so the
owner keeps full control even if their own row is missing or demoted.
"""

from __future__ import annotations

import uuid
from enum import IntEnum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import AccessDenied, WorkspaceNotFound
from app.models.workspace import Workspace
from app.models.workspace_member import WorkspaceMember
from taskard_shared.schemas.common import Role


class Authority(IntEnum):
    NONE = 0
    MEMBER = 1
    ADMIN = 2
    OWNER = 3


ROLE_AUTHORITY = {
    Role.MEMBER.value: Authority.MEMBER,
    Role.ADMIN.value: Authority.ADMIN,
}


async def get_workspace(session: AsyncSession, workspace_id: uuid.UUID) -> Workspace:
    workspace = await session.get(Workspace, workspace_id)
    if not workspace:
        raise WorkspaceNotFound()
    return workspace


async def get_membership(
    session: AsyncSession, user_id: uuid.UUID, workspace_id: uuid.UUID
) -> Optional[WorkspaceMember]:
    result = await session.execute(
        select(WorkspaceMember).where(
            WorkspaceMember.user_id == user_id,
            WorkspaceMember.workspace_id == workspace_id,
        )
    )
    return result.scalar_one_or_none()


async def authority_in(
    session: AsyncSession, user_id: uuid.UUID, workspace: Workspace
) -> Authority:
    """Authority of a user in an already-loaded workspace."""
    owner = Authority.OWNER if workspace.owner_id == user_id else Authority.NONE
    member = await get_membership(session, user_id, workspace.id)
    row = ROLE_AUTHORITY.get(member.role, Authority.NONE) if member else Authority.NONE
    return max(owner, row)


async def authority(
    session: AsyncSession, user_id: uuid.UUID, workspace_id: uuid.UUID
) -> Authority:
    """Raises WorkspaceNotFound when the workspace does not exist."""
    workspace = await get_workspace(session, workspace_id)
    return await authority_in(session, user_id, workspace)


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def can_access_workspace(level: Authority) -> bool:
    return level > Authority.NONE


def can_manage_workspace(level: Authority) -> bool:
    return level >= Authority.ADMIN


def can_remove_member(
    actor: Authority, target_user_id: uuid.UUID, workspace: Workspace
) -> bool:
    """Managers may remove anyone except the owner."""
    return can_manage_workspace(actor) and target_user_id != workspace.owner_id


async def is_member_or_owner(
    session: AsyncSession, user_id: uuid.UUID, workspace: Workspace
) -> bool:
    return can_access_workspace(await authority_in(session, user_id, workspace))


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

async def require_authority(
    session: AsyncSession,
    user_id: uuid.UUID,
    workspace_id: uuid.UUID,
    minimum: Authority = Authority.MEMBER,
) -> tuple[Workspace, Authority]:
    """Return the workspace and caller authority, or raise AccessDenied.

    A missing workspace is reported exactly like a forbidden one.
    """
    try:
        workspace = await get_workspace(session, workspace_id)
    except WorkspaceNotFound:
        raise AccessDenied() from None
    level = await authority_in(session, user_id, workspace)
    if level < minimum:
        raise AccessDenied()
    return workspace, level
