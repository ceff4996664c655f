"""Account, session and profile schemas."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, UUID4, field_validator

PASSWORD_MIN_LENGTH = 10


def validate_password_strength(password: str) -> str:
    """Raise ValueError unless the password satisfies the account password policy."""
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValueError(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
        )
    if not re.search(r"[A-Z]", password):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"[\W_]", password):
        raise ValueError("Password must contain at least one special character")
    return password


class _EmailNormalized(BaseModel):
    email: EmailStr

    @field_validator("email", mode="after")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.strip().lower()


class _NewPassword(BaseModel):
    password: str

    @field_validator("password")
    @classmethod
    def _policy(cls, v: str) -> str:
        return validate_password_strength(v)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class RegisterRequest(_EmailNormalized, _NewPassword):
    name: str = Field(min_length=1, max_length=200)


class LoginRequest(_EmailNormalized):
    password: str = Field(min_length=1)


class ForgotPasswordRequest(_EmailNormalized):
    pass


class ResetPasswordRequest(_NewPassword):
    pass


class UpdatePasswordRequest(_NewPassword):
    current_password: str = Field(min_length=1)


class UserUpdateRequest(BaseModel):
    """Profile fields a user may change on their own account."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    image: Optional[str] = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserRead(BaseModel):
    id: UUID4
    email: str
    name: str
    image: Optional[str] = None
    email_verified: bool
    provider: Optional[str] = None
    created_at: datetime


class UserSummary(BaseModel):
    """Public view of a user as shown to other workspace members."""
    id: UUID4
    name: str
    email: str
    image: Optional[str] = None


class SessionResponse(BaseModel):
    """Returned by every endpoint that establishes a session."""
    token: str
    user: UserRead


class MessageResponse(BaseModel):
    message: str
