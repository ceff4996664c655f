"""Task model."""

from datetime import datetime
from typing import List, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tasks"

    project_id: uuid.UUID = Field(
        foreign_key="projects.id", nullable=False, index=True, ondelete="CASCADE"
    )
    parent_task_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="tasks.id", index=True, ondelete="CASCADE"
    )
    title: str = Field(nullable=False)
    description: Optional[str] = None
    status: str = Field(nullable=False, default="TODO")  # TODO | IN_PROGRESS | REVIEW | DONE | CANCELED
    priority: Optional[str] = None  # URGENT | HIGH | NORMAL | LOW
    tags: List[str] = Field(default_factory=list, sa_type=sa.JSON, nullable=False)
    start_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    due_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    points: Optional[int] = None
    creator_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
