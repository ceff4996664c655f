"""
API v1 Router

Workspace-scoped collections are nested under /workspaces/{workspace_id};
individual projects, tasks and comments are addressed by id and resolved
through their ownership chain.
"""

from fastapi import APIRouter
from . import comments, projects, tasks, users, workspaces

router = APIRouter()

router.include_router(users.router, prefix="/users")
router.include_router(workspaces.router, prefix="/workspaces")

# Nested collections
router.include_router(projects.workspace_router, prefix="/workspaces/{workspace_id}/projects")
router.include_router(tasks.project_router, prefix="/projects/{project_id}/tasks")
router.include_router(comments.task_router, prefix="/tasks/{task_id}/comments")

# Addressed by id
router.include_router(projects.router, prefix="/projects")
router.include_router(tasks.router, prefix="/tasks")
router.include_router(comments.router, prefix="/comments")


@router.get("/", tags=["API"])
async def api_root():
    """API root: version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/users/me",
            "/workspaces",
            "/workspaces/{workspace_id}/members",
            "/workspaces/{workspace_id}/invites",
            "/workspaces/{workspace_id}/projects",
            "/projects/{project_id}/tasks",
            "/tasks/{task_id}/comments",
        ],
    }
