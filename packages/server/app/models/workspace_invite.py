"""Pending workspace invitation. Only the sha256 of the token is stored."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, utcnow


class WorkspaceInvite(UUIDMixin, SQLModel, table=True):
    __tablename__ = "workspace_invites"
    __table_args__ = (
        sa.UniqueConstraint("email", "workspace_id", name="uq_workspace_invites_email_workspace"),
    )

    email: str = Field(nullable=False, index=True)
    role: str = Field(nullable=False, default="MEMBER")
    token: str = Field(nullable=False, index=True)
    expires: datetime = Field(nullable=False, index=True, sa_type=sa.DateTime(timezone=True))
    workspace_id: uuid.UUID = Field(
        foreign_key="workspaces.id", nullable=False, index=True, ondelete="CASCADE"
    )
    invited_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="CASCADE")
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )
