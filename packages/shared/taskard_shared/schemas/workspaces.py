"""
Workspace-related Pydantic schemas.

Covers: workspace CRUD request/response, membership listing and role
changes, invitation issue/list payloads.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from .common import Role
from .users import UserSummary


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class WorkspaceCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Workspace display name")
    image: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Workspace name is required")
        return v


class WorkspaceUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    image: Optional[str] = None


class MemberRoleUpdateRequest(BaseModel):
    role: Role


class InviteCreateRequest(BaseModel):
    email: EmailStr
    role: Role = Role.MEMBER

    @field_validator("email", mode="after")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.strip().lower()


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class WorkspaceResponse(BaseModel):
    id: uuid.UUID
    name: str
    image: Optional[str] = None
    owner_id: uuid.UUID
    authority: str = Field(description="Caller's authority: OWNER, ADMIN or MEMBER")
    created_at: datetime
    updated_at: datetime


class MemberResponse(BaseModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    role: Role
    is_owner: bool = False
    user: UserSummary
    joined_at: datetime


class InviteResponse(BaseModel):
    """Non-sensitive view of an invitation. The token is never returned."""
    id: uuid.UUID
    email: str
    role: Role


class PendingInviteResponse(InviteResponse):
    expires: datetime
    invited_by: Optional[uuid.UUID] = None
