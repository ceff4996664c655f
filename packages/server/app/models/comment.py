"""Task comment model."""

import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class TaskComment(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "task_comments"

    task_id: uuid.UUID = Field(foreign_key="tasks.id", nullable=False, index=True, ondelete="CASCADE")
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True, ondelete="CASCADE")
    content: str = Field(nullable=False)
