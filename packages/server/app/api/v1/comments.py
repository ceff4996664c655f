"""
Task comment endpoints.

GET    /api/v1/tasks/{task_id}/comments  — List comments, newest first
POST   /api/v1/tasks/{task_id}/comments  — Add a comment
DELETE /api/v1/comments/{comment_id}     — Delete a comment
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, get_current_user
from app.core.database import get_session
from app.services import access as access_service
from app.services import comments as comment_service
from taskard_shared.schemas.common import APIResponse
from taskard_shared.schemas.tasks import CommentCreate, CommentListResponse, CommentRead

# Mounted under /tasks/{task_id}/comments
task_router = APIRouter()
# Mounted under /comments
router = APIRouter()


@task_router.get("", response_model=CommentListResponse, tags=["Comments"])
async def list_comments(
    task_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    await access_service.require_task(session, auth.user_id, task_id)
    comments = await comment_service.list_comments(session, task_id)
    return CommentListResponse(data=comments, total=len(comments))


@task_router.post(
    "", response_model=APIResponse[CommentRead], status_code=201, tags=["Comments"]
)
async def add_comment(
    task_id: uuid.UUID,
    body: CommentCreate,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    chain = await access_service.require_task(session, auth.user_id, task_id)
    comment = await comment_service.add_comment(session, chain, auth.user, body.content)
    return APIResponse(data=comment_service.to_read(comment, auth.user))


@router.delete("/{comment_id}", status_code=204, tags=["Comments"])
async def delete_comment(
    comment_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Allowed for the author, the task or project creator, and workspace admins."""
    chain = await access_service.require_comment(session, auth.user_id, comment_id)
    await comment_service.delete_comment(session, chain, auth.user_id)
    return None
