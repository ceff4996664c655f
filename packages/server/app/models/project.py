"""Project model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Project(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "projects"

    workspace_id: uuid.UUID = Field(
        foreign_key="workspaces.id", nullable=False, index=True, ondelete="CASCADE"
    )
    name: str = Field(nullable=False)
    description: Optional[str] = None
    start_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    end_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    # Audit only; never sufficient for access on its own.
    creator_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")
