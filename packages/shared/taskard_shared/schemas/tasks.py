"""Task-related Pydantic schemas shared between server and client codegen."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import UUID4

from .common import TaskPriority, TaskStatus
from .users import UserSummary


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskBase(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: Optional[TaskPriority] = None
    tags: List[str] = Field(default_factory=list)
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    points: Optional[int] = Field(default=None, gt=0)


class TaskCreate(TaskBase):
    parent_task_id: Optional[UUID4] = None
    assignee_ids: List[UUID4] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Partial update. ``parent_task_id`` set to null detaches a subtask."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    tags: Optional[List[str]] = None
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    points: Optional[int] = Field(default=None, gt=0)
    parent_task_id: Optional[UUID4] = None
    assignee_ids: Optional[List[UUID4]] = None

    @field_validator("title", "status", "tags")
    @classmethod
    def _not_null(cls, v, info):
        if v is None:
            raise ValueError(f"Task {info.field_name} cannot be null")
        return v


class TaskRead(BaseModel):
    id: UUID4
    project_id: UUID4
    parent_task_id: Optional[UUID4] = None
    creator_id: Optional[UUID4] = None
    title: str
    description: Optional[str] = None
    status: str
    priority: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    points: Optional[int] = None
    assignees: List[UserSummary] = Field(default_factory=list)
    subtask_ids: List[UUID4] = Field(default_factory=list)
    comment_count: int = 0
    created_at: datetime
    updated_at: datetime


class TaskListResponse(BaseModel):
    status: str = "success"
    data: List[TaskRead]
    page: int
    limit: int
    total: int


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------

class TaskAssignRequest(BaseModel):
    """Request body for POST /tasks/{taskId}/assign and /unassign."""
    user_id: UUID4


# ---------------------------------------------------------------------------
# Listing query
# ---------------------------------------------------------------------------

# Columns a client may sort on; anything else is rejected.
SORTABLE_FIELDS = (
    "created_at",
    "updated_at",
    "title",
    "status",
    "priority",
    "start_date",
    "due_date",
    "points",
)


class TaskQuery(BaseModel):
    """Immutable filter/sort/page description for listing a project's tasks.

    ``sort`` is a comma-separated list of field names; a leading ``-``
    sorts that field descending. Without one, newest tasks come first.
    """

    model_config = ConfigDict(frozen=True)

    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    search: Optional[str] = None
    sort: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

    @field_validator("sort")
    @classmethod
    def _check_sort(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        for key in v.split(","):
            name = key.strip().lstrip("-")
            if name not in SORTABLE_FIELDS:
                raise ValueError(f"Cannot sort tasks by '{name}'")
        return v

    def sort_keys(self) -> list[tuple[str, bool]]:
        """Return ``(field, descending)`` pairs in priority order."""
        if not self.sort:
            return [("created_at", True)]
        keys = []
        for key in self.sort.split(","):
            key = key.strip()
            keys.append((key.lstrip("-"), key.startswith("-")))
        return keys

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=10_000)


class CommentRead(BaseModel):
    id: UUID4
    task_id: UUID4
    content: str
    author: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime


class CommentListResponse(BaseModel):
    status: str = "success"
    data: List[CommentRead]
    total: int
