"""
Task comment service.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.comment import TaskComment
from app.models.user import User
from app.services import access
from app.services.access import ResourceChain
from taskard_shared.schemas.tasks import CommentRead
from taskard_shared.schemas.users import UserSummary

log = structlog.get_logger()


def to_read(comment: TaskComment, author: User | None) -> CommentRead:
    return CommentRead(
        id=comment.id,
        task_id=comment.task_id,
        content=comment.content,
        author=(
            UserSummary(id=author.id, name=author.name, email=author.email, image=author.image)
            if author
            else None
        ),
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )


async def add_comment(
    session: AsyncSession, chain: ResourceChain, author: User, content: str
) -> TaskComment:
    comment = TaskComment(task_id=chain.task.id, user_id=author.id, content=content)
    session.add(comment)
    await session.flush()
    log.info("comment.created", comment_id=str(comment.id), task_id=str(chain.task.id))
    return comment


async def list_comments(session: AsyncSession, task_id: uuid.UUID) -> list[CommentRead]:
    """Comments on a task, newest first."""
    result = await session.execute(
        select(TaskComment, User)
        .outerjoin(User, User.id == TaskComment.user_id)
        .where(TaskComment.task_id == task_id)
        .order_by(TaskComment.created_at.desc(), TaskComment.id)
    )
    return [to_read(c, u) for c, u in result.all()]


async def delete_comment(session: AsyncSession, chain: ResourceChain, user_id: uuid.UUID) -> None:
    access.ensure(access.can_delete_comment(chain, user_id))
    await session.delete(chain.comment)
    await session.flush()
    log.info("comment.deleted", comment_id=str(chain.comment.id), by=str(user_id))
