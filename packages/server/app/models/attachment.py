"""Task attachment metadata. File bytes live in the image store."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utcnow


class TaskAttachment(UUIDMixin, SQLModel, table=True):
    __tablename__ = "task_attachments"

    task_id: uuid.UUID = Field(foreign_key="tasks.id", nullable=False, index=True, ondelete="CASCADE")
    file_url: str = Field(nullable=False)
    file_name: Optional[str] = None
    uploaded_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
