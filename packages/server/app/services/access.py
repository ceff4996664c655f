"""
Resource access mediation.

Every workspace-scoped entity reaches its workspace through an ownership
chain (comment -> task -> project -> workspace). The chain is walked on
each request; no entity stores a denormalized workspace id. A resource
that does not exist and one the caller may not see produce the same
NotFoundError.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import AccessDenied, NotFoundError
from app.models.comment import TaskComment
from app.models.project import Project
from app.models.task import Task
from app.models.workspace import Workspace
from app.services import membership
from app.services.membership import Authority


class ResourceType(str, Enum):
    WORKSPACE = "workspace"
    PROJECT = "project"
    TASK = "task"
    COMMENT = "comment"


@dataclass
class ResourceChain:
    """A resource together with every ancestor up to its workspace."""
    workspace: Workspace
    project: Optional[Project] = None
    task: Optional[Task] = None
    comment: Optional[TaskComment] = None
    authority: Authority = Authority.NONE


async def resolve_chain(
    session: AsyncSession, resource_id: uuid.UUID, resource_type: ResourceType
) -> Optional[ResourceChain]:
    """Load the resource and its ancestors, or None if any link is missing."""
    comment = task = project = None
    workspace_id = project_id = task_id = None

    if resource_type == ResourceType.COMMENT:
        comment = await session.get(TaskComment, resource_id)
        if not comment:
            return None
        task_id = comment.task_id
    elif resource_type == ResourceType.TASK:
        task_id = resource_id

    if task_id is not None:
        task = await session.get(Task, task_id)
        if not task:
            return None
        project_id = task.project_id
    elif resource_type == ResourceType.PROJECT:
        project_id = resource_id

    if project_id is not None:
        project = await session.get(Project, project_id)
        if not project:
            return None
        workspace_id = project.workspace_id
    elif resource_type == ResourceType.WORKSPACE:
        workspace_id = resource_id

    workspace = await session.get(Workspace, workspace_id)
    if not workspace:
        return None
    return ResourceChain(workspace=workspace, project=project, task=task, comment=comment)


async def can_access_resource(
    session: AsyncSession,
    user_id: uuid.UUID,
    resource_id: uuid.UUID,
    resource_type: ResourceType,
) -> bool:
    chain = await resolve_chain(session, resource_id, resource_type)
    if chain is None:
        return False
    level = await membership.authority_in(session, user_id, chain.workspace)
    return membership.can_access_workspace(level)


async def _require(
    session: AsyncSession,
    user_id: uuid.UUID,
    resource_id: uuid.UUID,
    resource_type: ResourceType,
    label: str,
) -> ResourceChain:
    chain = await resolve_chain(session, resource_id, resource_type)
    if chain is not None:
        chain.authority = await membership.authority_in(session, user_id, chain.workspace)
    if chain is None or not membership.can_access_workspace(chain.authority):
        raise NotFoundError(f"{label} not found or access denied")
    return chain


async def require_project(
    session: AsyncSession, user_id: uuid.UUID, project_id: uuid.UUID
) -> ResourceChain:
    return await _require(session, user_id, project_id, ResourceType.PROJECT, "Project")


async def require_task(
    session: AsyncSession, user_id: uuid.UUID, task_id: uuid.UUID
) -> ResourceChain:
    return await _require(session, user_id, task_id, ResourceType.TASK, "Task")


async def require_comment(
    session: AsyncSession, user_id: uuid.UUID, comment_id: uuid.UUID
) -> ResourceChain:
    return await _require(session, user_id, comment_id, ResourceType.COMMENT, "Comment")


# ---------------------------------------------------------------------------
# Elevated actions
# ---------------------------------------------------------------------------


def can_delete_comment(chain: ResourceChain, user_id: uuid.UUID) -> bool:
    """Author, task creator, project creator, or workspace admin/owner."""
    grants = [
        chain.comment.user_id == user_id,
        chain.task.creator_id == user_id,
        chain.project.creator_id == user_id,
        membership.can_manage_workspace(chain.authority),
    ]
    return any(grants)


def can_delete_project(chain: ResourceChain, user_id: uuid.UUID) -> bool:
    return chain.project.creator_id == user_id or membership.can_manage_workspace(
        chain.authority
    )


def ensure(allowed: bool) -> None:
    if not allowed:
        raise AccessDenied()
