"""
Task endpoints.

POST   /api/v1/projects/{project_id}/tasks  — Create a task (optionally a subtask)
GET    /api/v1/projects/{project_id}/tasks  — List tasks (filter, search, sort, page)
GET    /api/v1/tasks/{task_id}              — Get task
PATCH  /api/v1/tasks/{task_id}              — Update task, reparent, replace assignees
DELETE /api/v1/tasks/{task_id}              — Delete task with subtasks and dependents
POST   /api/v1/tasks/{task_id}/assign       — Assign a workspace member
POST   /api/v1/tasks/{task_id}/unassign     — Remove an assignee
"""

from __future__ import annotations

import uuid
from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, get_current_user
from app.core.database import get_session
from app.core.errors import ValidationError
from app.services import access as access_service
from app.services import tasks as task_service
from taskard_shared.schemas.common import APIResponse, TaskPriority, TaskStatus
from taskard_shared.schemas.tasks import (
    TaskAssignRequest,
    TaskCreate,
    TaskListResponse,
    TaskQuery,
    TaskRead,
    TaskUpdate,
)

# Mounted under /projects/{project_id}/tasks
project_router = APIRouter()
# Mounted under /tasks
router = APIRouter()


def task_query(
    status: Optional[TaskStatus] = Query(None),
    priority: Optional[TaskPriority] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    sort: Optional[str] = Query(None, description="e.g. -due_date,title"),
    page: int = Query(1),
    limit: int = Query(20),
) -> TaskQuery:
    try:
        return TaskQuery(
            status=status, priority=priority, search=search, sort=sort, page=page, limit=limit
        )
    except pydantic.ValidationError as exc:
        message = ". ".join(
            str(err["msg"]).removeprefix("Value error, ") for err in exc.errors()
        )
        raise ValidationError(f"Invalid query: {message}") from exc


@project_router.post("", response_model=APIResponse[TaskRead], status_code=201, tags=["Tasks"])
async def create_task(
    project_id: uuid.UUID,
    body: TaskCreate,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    chain = await access_service.require_project(session, auth.user_id, project_id)
    task = await task_service.create_task(session, chain, auth.user_id, body)
    return APIResponse(data=await task_service.enrich_task(session, task))


@project_router.get("", response_model=TaskListResponse, tags=["Tasks"])
async def list_tasks(
    project_id: uuid.UUID,
    query: TaskQuery = Depends(task_query),
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """One page of a project's tasks with the total match count."""
    await access_service.require_project(session, auth.user_id, project_id)
    tasks, total = await task_service.list_tasks(session, project_id, query)
    return TaskListResponse(
        data=await task_service.enrich_tasks(session, tasks),
        page=query.page,
        limit=query.limit,
        total=total,
    )


@router.get("/{task_id}", response_model=APIResponse[TaskRead], tags=["Tasks"])
async def get_task(
    task_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    chain = await access_service.require_task(session, auth.user_id, task_id)
    return APIResponse(data=await task_service.enrich_task(session, chain.task))


@router.patch("/{task_id}", response_model=APIResponse[TaskRead], tags=["Tasks"])
async def update_task(
    task_id: uuid.UUID,
    body: TaskUpdate,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Partial update. ``assignee_ids``, when present, replaces the assignee set."""
    chain = await access_service.require_task(session, auth.user_id, task_id)
    task = await task_service.update_task(session, chain, body)
    return APIResponse(data=await task_service.enrich_task(session, task))


@router.delete("/{task_id}", status_code=204, tags=["Tasks"])
async def delete_task(
    task_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    chain = await access_service.require_task(session, auth.user_id, task_id)
    await task_service.delete_task(session, chain.task)
    return None


@router.post("/{task_id}/assign", response_model=APIResponse[TaskRead], tags=["Tasks"])
async def assign_task(
    task_id: uuid.UUID,
    body: TaskAssignRequest,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    chain = await access_service.require_task(session, auth.user_id, task_id)
    await task_service.assign_user(session, chain, body.user_id)
    return APIResponse(data=await task_service.enrich_task(session, chain.task))


@router.post("/{task_id}/unassign", response_model=APIResponse[TaskRead], tags=["Tasks"])
async def unassign_task(
    task_id: uuid.UUID,
    body: TaskAssignRequest,
    auth: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    chain = await access_service.require_task(session, auth.user_id, task_id)
    await task_service.unassign_user(session, chain, body.user_id)
    return APIResponse(data=await task_service.enrich_task(session, chain.task))
