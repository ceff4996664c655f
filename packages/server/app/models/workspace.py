"""Workspace model."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Workspace(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "workspaces"

    name: str = Field(nullable=False, index=True)
    image: Optional[str] = None
    # Ownership is permanent and independent of any membership row.
    owner_id: uuid.UUID = Field(
        foreign_key="users.id", nullable=False, index=True, ondelete="CASCADE"
    )
