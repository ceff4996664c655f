"""
Task service layer: business logic for tasks, subtasks and assignees.

Handles:
- Task CRUD with a strict one-level parent/subtask hierarchy
- Assignee management (workspace members only, set-based replacement)
- Filtered, sorted, paginated listing driven by a TaskQuery
- The task deletion cascade (comments, attachments, assignments, subtasks)
- Enrichment of task rows for API responses
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from typing import Iterable, Optional, Sequence

import structlog
from sqlalchemy import delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import ConflictError, NotAWorkspaceMember, NotFoundError, ValidationError
from app.models.assignments import TaskAssignment
from app.models.attachment import TaskAttachment
from app.models.base import LIKE_ESCAPE, contains_pattern, utcnow
from app.models.comment import TaskComment
from app.models.task import Task
from app.models.user import User
from app.models.workspace import Workspace
from app.services import membership
from app.services.access import ResourceChain
from taskard_shared.schemas.tasks import TaskCreate, TaskQuery, TaskRead, TaskUpdate
from taskard_shared.schemas.users import UserSummary

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------


async def enrich_tasks(session: AsyncSession, tasks: Sequence[Task]) -> list[TaskRead]:
    """Convert Task rows to TaskRead with assignees, subtasks and comment counts."""
    if not tasks:
        return []
    ids = [t.id for t in tasks]

    assignees: dict[uuid.UUID, list[UserSummary]] = defaultdict(list)
    result = await session.execute(
        select(TaskAssignment.task_id, User)
        .join(User, User.id == TaskAssignment.user_id)
        .where(TaskAssignment.task_id.in_(ids))
        .order_by(TaskAssignment.assigned_at)
    )
    for task_id, user in result.all():
        assignees[task_id].append(
            UserSummary(id=user.id, name=user.name, email=user.email, image=user.image)
        )

    subtasks: dict[uuid.UUID, list[uuid.UUID]] = defaultdict(list)
    result = await session.execute(
        select(Task.parent_task_id, Task.id)
        .where(Task.parent_task_id.in_(ids))
        .order_by(Task.created_at)
    )
    for parent_id, child_id in result.all():
        subtasks[parent_id].append(child_id)

    result = await session.execute(
        select(TaskComment.task_id, func.count(TaskComment.id))
        .where(TaskComment.task_id.in_(ids))
        .group_by(TaskComment.task_id)
    )
    comment_counts = dict(result.all())

    return [
        TaskRead(
            id=t.id,
            project_id=t.project_id,
            parent_task_id=t.parent_task_id,
            creator_id=t.creator_id,
            title=t.title,
            description=t.description,
            status=t.status,
            priority=t.priority,
            tags=t.tags or [],
            start_date=t.start_date,
            due_date=t.due_date,
            points=t.points,
            assignees=assignees.get(t.id, []),
            subtask_ids=subtasks.get(t.id, []),
            comment_count=comment_counts.get(t.id, 0),
            created_at=t.created_at,
            updated_at=t.updated_at,
        )
        for t in tasks
    ]


async def enrich_task(session: AsyncSession, task: Task) -> TaskRead:
    return (await enrich_tasks(session, [task]))[0]


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


async def _validate_parent(
    session: AsyncSession,
    project_id: uuid.UUID,
    parent_id: uuid.UUID,
    task: Optional[Task] = None,
) -> Task:
    """Parent must be a root task of the same project and not the task itself."""
    if task is not None and parent_id == task.id:
        raise ValidationError("Task cannot be its own parent")

    result = await session.execute(
        select(Task).where(Task.id == parent_id, Task.project_id == project_id)
    )
    parent = result.scalar_one_or_none()
    if not parent:
        raise NotFoundError("Parent task not found in this project")
    if parent.parent_task_id is not None:
        raise ValidationError("Subtasks cannot have subtasks of their own")

    if task is not None:
        result = await session.execute(
            select(func.count(Task.id)).where(Task.parent_task_id == task.id)
        )
        if result.scalar_one() > 0:
            raise ValidationError("A task with subtasks cannot become a subtask")
    return parent


async def _ensure_members(
    session: AsyncSession, workspace: Workspace, user_ids: Iterable[uuid.UUID]
) -> None:
    for user_id in user_ids:
        if not await membership.is_member_or_owner(session, user_id, workspace):
            raise NotAWorkspaceMember()


async def get_assignee_ids(session: AsyncSession, task_id: uuid.UUID) -> set[uuid.UUID]:
    result = await session.execute(
        select(TaskAssignment.user_id).where(TaskAssignment.task_id == task_id)
    )
    return {row[0] for row in result.all()}


async def replace_assignees(
    session: AsyncSession, workspace: Workspace, task: Task, user_ids: Iterable[uuid.UUID]
) -> None:
    """Make the task's assignee set exactly ``user_ids``. Repeating a call is a no-op."""
    wanted = set(user_ids)
    await _ensure_members(session, workspace, wanted)

    current = await get_assignee_ids(session, task.id)
    removed = current - wanted
    if removed:
        await session.execute(
            delete(TaskAssignment).where(
                TaskAssignment.task_id == task.id,
                TaskAssignment.user_id.in_(list(removed)),
            )
        )
    for user_id in wanted - current:
        session.add(TaskAssignment(task_id=task.id, user_id=user_id))
    await session.flush()


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def create_task(
    session: AsyncSession,
    chain: ResourceChain,
    creator_id: uuid.UUID,
    task_in: TaskCreate,
) -> Task:
    project = chain.project
    if task_in.parent_task_id is not None:
        await _validate_parent(session, project.id, task_in.parent_task_id)
    if task_in.assignee_ids:
        await _ensure_members(session, chain.workspace, set(task_in.assignee_ids))

    task = Task(
        project_id=project.id,
        parent_task_id=task_in.parent_task_id,
        title=task_in.title,
        description=task_in.description,
        status=task_in.status.value,
        priority=task_in.priority.value if task_in.priority else None,
        tags=list(task_in.tags),
        start_date=task_in.start_date,
        due_date=task_in.due_date,
        points=task_in.points,
        creator_id=creator_id,
    )
    session.add(task)
    await session.flush()

    if task_in.assignee_ids:
        await replace_assignees(session, chain.workspace, task, task_in.assignee_ids)

    log.info("task.created", task_id=str(task.id), project_id=str(project.id))
    return task


async def list_tasks(
    session: AsyncSession, project_id: uuid.UUID, query: TaskQuery
) -> tuple[list[Task], int]:
    """Return one page of a project's tasks plus the total match count."""
    conditions = [Task.project_id == project_id]
    if query.status is not None:
        conditions.append(Task.status == query.status.value)
    if query.priority is not None:
        conditions.append(Task.priority == query.priority.value)
    if query.search:
        pattern = contains_pattern(query.search)
        conditions.append(
            or_(
                func.lower(Task.title).like(pattern, escape=LIKE_ESCAPE),
                func.lower(func.coalesce(Task.description, "")).like(pattern, escape=LIKE_ESCAPE),
            )
        )

    total = (
        await session.execute(select(func.count(Task.id)).where(*conditions))
    ).scalar_one()

    order_by = []
    for field, descending in query.sort_keys():
        column = getattr(Task, field)
        order_by.append(column.desc() if descending else column.asc())
    order_by.append(Task.id.asc())

    result = await session.execute(
        select(Task)
        .where(*conditions)
        .order_by(*order_by)
        .offset(query.offset)
        .limit(query.limit)
    )
    return list(result.scalars().all()), total


async def list_project_tasks(session: AsyncSession, project_id: uuid.UUID) -> list[Task]:
    result = await session.execute(
        select(Task).where(Task.project_id == project_id).order_by(Task.created_at)
    )
    return list(result.scalars().all())


async def update_task(
    session: AsyncSession, chain: ResourceChain, task_in: TaskUpdate
) -> Task:
    task = chain.task
    fields = task_in.model_fields_set

    if "parent_task_id" in fields and task_in.parent_task_id != task.parent_task_id:
        if task_in.parent_task_id is not None:
            await _validate_parent(session, task.project_id, task_in.parent_task_id, task)
        task.parent_task_id = task_in.parent_task_id

    for name in ("title", "description", "start_date", "due_date", "points"):
        if name in fields:
            setattr(task, name, getattr(task_in, name))
    if "status" in fields and task_in.status is not None:
        task.status = task_in.status.value
    if "priority" in fields:
        task.priority = task_in.priority.value if task_in.priority else None
    if "tags" in fields:
        task.tags = list(task_in.tags or [])

    task.updated_at = utcnow()
    session.add(task)
    await session.flush()

    if task_in.assignee_ids is not None:
        await replace_assignees(session, chain.workspace, task, task_in.assignee_ids)

    log.info("task.updated", task_id=str(task.id))
    return task


async def delete_task_rows(session: AsyncSession, task_ids: Sequence[uuid.UUID]) -> int:
    """Delete tasks, their subtasks and every dependent row.

    Runs inside the caller's transaction, so the whole cascade commits or
    rolls back as one unit.
    """
    if not task_ids:
        return 0
    ids = set(task_ids)
    frontier = set(task_ids)
    while frontier:
        result = await session.execute(select(Task.id).where(Task.parent_task_id.in_(list(frontier))))
        frontier = {row[0] for row in result.all()} - ids
        ids |= frontier

    ids = list(ids)
    await session.execute(delete(TaskComment).where(TaskComment.task_id.in_(ids)))
    await session.execute(delete(TaskAttachment).where(TaskAttachment.task_id.in_(ids)))
    await session.execute(delete(TaskAssignment).where(TaskAssignment.task_id.in_(ids)))
    await session.execute(delete(Task).where(Task.parent_task_id.in_(ids)))
    await session.execute(delete(Task).where(Task.id.in_(ids)))
    await session.flush()
    return len(ids)


async def delete_task(session: AsyncSession, task: Task) -> None:
    count = await delete_task_rows(session, [task.id])
    log.info("task.deleted", task_id=str(task.id), rows=count)


# ---------------------------------------------------------------------------
# Single assignment
# ---------------------------------------------------------------------------


async def assign_user(session: AsyncSession, chain: ResourceChain, user_id: uuid.UUID) -> None:
    task = chain.task
    await _ensure_members(session, chain.workspace, [user_id])
    if user_id in await get_assignee_ids(session, task.id):
        raise ConflictError("User is already assigned to this task")

    session.add(TaskAssignment(task_id=task.id, user_id=user_id))
    await session.flush()
    log.info("task.assigned", task_id=str(task.id), user_id=str(user_id))


async def unassign_user(session: AsyncSession, chain: ResourceChain, user_id: uuid.UUID) -> None:
    task = chain.task
    result = await session.execute(
        delete(TaskAssignment).where(
            TaskAssignment.task_id == task.id,
            TaskAssignment.user_id == user_id,
        )
    )
    if not result.rowcount:
        raise NotFoundError("User is not assigned to this task")
    await session.flush()
    log.info("task.unassigned", task_id=str(task.id), user_id=str(user_id))
