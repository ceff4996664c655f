"""Workspace membership (join table carrying the member's role)."""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utcnow


class WorkspaceMember(UUIDMixin, SQLModel, table=True):
    __tablename__ = "workspace_members"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "workspace_id", name="uq_workspace_members_user_workspace"),
    )

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True, ondelete="CASCADE")
    workspace_id: uuid.UUID = Field(
        foreign_key="workspaces.id", nullable=False, index=True, ondelete="CASCADE"
    )
    role: str = Field(nullable=False, default="MEMBER")  # ADMIN | MEMBER
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )
