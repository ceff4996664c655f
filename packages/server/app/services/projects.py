"""
Project service: CRUD and the project deletion cascade.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import case, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.base import utcnow
from app.models.project import Project
from app.models.task import Task
from app.models.workspace import Workspace
from app.services import tasks as task_service
from taskard_shared.schemas.common import TaskStatus
from taskard_shared.schemas.projects import ProjectCreate, ProjectDetail, ProjectRead, ProjectUpdate

log = structlog.get_logger()


async def _task_counts(
    session: AsyncSession, project_ids: list[uuid.UUID]
) -> dict[uuid.UUID, tuple[int, int]]:
    if not project_ids:
        return {}
    result = await session.execute(
        select(
            Task.project_id,
            func.count(Task.id),
            func.sum(case((Task.status == TaskStatus.DONE.value, 1), else_=0)),
        )
        .where(Task.project_id.in_(project_ids))
        .group_by(Task.project_id)
    )
    return {pid: (total, int(done or 0)) for pid, total, done in result.all()}


def _to_read(project: Project, counts: tuple[int, int] = (0, 0)) -> ProjectRead:
    return ProjectRead(
        id=project.id,
        workspace_id=project.workspace_id,
        creator_id=project.creator_id,
        name=project.name,
        description=project.description,
        start_date=project.start_date,
        end_date=project.end_date,
        task_count=counts[0],
        task_done_count=counts[1],
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


async def project_to_read(session: AsyncSession, project: Project) -> ProjectRead:
    counts = await _task_counts(session, [project.id])
    return _to_read(project, counts.get(project.id, (0, 0)))


async def project_detail(session: AsyncSession, project: Project) -> ProjectDetail:
    tasks = await task_service.list_project_tasks(session, project.id)
    read = await project_to_read(session, project)
    return ProjectDetail(
        **read.model_dump(),
        tasks=await task_service.enrich_tasks(session, tasks),
    )


async def create_project(
    session: AsyncSession, workspace: Workspace, creator_id: uuid.UUID, req: ProjectCreate
) -> Project:
    project = Project(
        workspace_id=workspace.id,
        creator_id=creator_id,
        name=req.name,
        description=req.description,
        start_date=req.start_date,
        end_date=req.end_date,
    )
    session.add(project)
    await session.flush()
    log.info("project.created", project_id=str(project.id), workspace_id=str(workspace.id))
    return project


async def list_projects(session: AsyncSession, workspace_id: uuid.UUID) -> list[ProjectRead]:
    result = await session.execute(
        select(Project)
        .where(Project.workspace_id == workspace_id)
        .order_by(Project.created_at.desc())
    )
    projects = list(result.scalars().all())
    counts = await _task_counts(session, [p.id for p in projects])
    return [_to_read(p, counts.get(p.id, (0, 0))) for p in projects]


async def update_project(
    session: AsyncSession, project: Project, req: ProjectUpdate
) -> Project:
    for name in req.model_fields_set:
        value = getattr(req, name)
        if name == "name" and value is None:
            continue
        setattr(project, name, value)
    project.updated_at = utcnow()
    session.add(project)
    await session.flush()
    log.info("project.updated", project_id=str(project.id))
    return project


async def delete_project_cascade(session: AsyncSession, project_id: uuid.UUID) -> None:
    """Delete a project with every task and task-dependent row in it."""
    result = await session.execute(select(Task.id).where(Task.project_id == project_id))
    task_ids = [row[0] for row in result.all()]
    await task_service.delete_task_rows(session, task_ids)
    await session.execute(delete(Project).where(Project.id == project_id))
    await session.flush()
    log.info("project.deleted", project_id=str(project_id), tasks=len(task_ids))
