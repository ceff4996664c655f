"""User model."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = (
        sa.UniqueConstraint("provider", "provider_id", name="uq_users_provider_identity"),
    )

    email: str = Field(nullable=False, unique=True, index=True)  # always lower-cased
    name: str = Field(nullable=False)
    image: Optional[str] = None
    password_hash: Optional[str] = Field(default=None)  # null for OAuth-only accounts
    email_verified: bool = Field(default=False, nullable=False)
    verification_token: Optional[str] = Field(default=None, index=True)  # sha256 hex
    verification_expires: Optional[datetime] = Field(
        default=None, sa_type=sa.DateTime(timezone=True)
    )
    password_reset_token: Optional[str] = Field(default=None, index=True)  # sha256 hex
    password_reset_expires: Optional[datetime] = Field(
        default=None, sa_type=sa.DateTime(timezone=True)
    )
    password_changed_at: Optional[datetime] = Field(
        default=None, sa_type=sa.DateTime(timezone=True)
    )
    provider: Optional[str] = None  # google
    provider_id: Optional[str] = None
