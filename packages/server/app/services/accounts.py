"""
Account lifecycle: registration, email verification, password reset and
change, profile updates and account deletion.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta

import structlog
from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import generate_token, hash_password, hash_token, verify_password
from app.core.config import get_settings
from app.core.errors import AuthenticationError, ConflictError, ValidationError
from app.models.assignments import TaskAssignment
from app.models.attachment import TaskAttachment
from app.models.base import as_utc, utcnow
from app.models.comment import TaskComment
from app.models.project import Project
from app.models.task import Task
from app.models.user import User
from app.models.workspace import Workspace
from app.models.workspace_invite import WorkspaceInvite
from app.models.workspace_member import WorkspaceMember
from app.services import email as email_service
from app.services import workspaces as workspace_service
from taskard_shared.schemas.users import RegisterRequest, UserUpdateRequest

log = structlog.get_logger()
settings = get_settings()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Registration & verification
# ---------------------------------------------------------------------------


async def register(session: AsyncSession, req: RegisterRequest) -> User:
    """Create an unverified account and email its verification link."""
    if await get_user_by_email(session, req.email):
        raise ConflictError("An account with this email already exists")

    token, token_hash = generate_token()
    user = User(
        email=req.email,
        name=req.name,
        password_hash=hash_password(req.password),
        email_verified=False,
        verification_token=token_hash,
        verification_expires=utcnow()
        + timedelta(minutes=settings.verification_token_ttl_minutes),
    )
    session.add(user)
    await session.flush()

    await email_service.send_verification_email(to=user.email, name=user.name, token=token)

    log.info("user.registered", user_id=str(user.id))
    return user


async def verify_email(session: AsyncSession, token: str) -> User:
    result = await session.execute(
        select(User).where(User.verification_token == hash_token(token))
    )
    user = result.scalar_one_or_none()
    if not user:
        raise ValidationError("Invalid verification token")

    expires = as_utc(user.verification_expires)
    if expires is None or expires < utcnow():
        await session.delete(user)
        # The purge must persist even though the request fails.
        await session.commit()
        log.info("user.verification_expired", user_id=str(user.id))
        raise ValidationError("Verification token has expired. Please sign up again")

    user.email_verified = True
    user.verification_token = None
    user.verification_expires = None
    session.add(user)
    await session.flush()

    log.info("user.verified", user_id=str(user.id))
    return user


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


async def forgot_password(session: AsyncSession, email: str) -> None:
    """Email a reset link if the account exists. Silent otherwise."""
    user = await get_user_by_email(session, email)
    if not user:
        log.info("user.password_reset_unknown_email")
        return

    token, token_hash = generate_token()
    user.password_reset_token = token_hash
    user.password_reset_expires = utcnow() + timedelta(
        minutes=settings.password_reset_token_ttl_minutes
    )
    session.add(user)
    await session.flush()

    await email_service.send_password_reset_email(to=user.email, token=token)
    log.info("user.password_reset_requested", user_id=str(user.id))


async def reset_password(session: AsyncSession, token: str, new_password: str) -> User:
    now = utcnow()
    result = await session.execute(
        select(User).where(
            User.password_reset_token == hash_token(token),
            User.password_reset_expires > now,
        )
    )
    user = result.scalar_one_or_none()
    if not user:
        raise ValidationError("Token is invalid or has expired")

    _set_password(user, new_password, now)
    user.password_reset_token = None
    user.password_reset_expires = None
    # Following a reset link proves control of the mailbox.
    user.email_verified = True
    session.add(user)
    await session.flush()

    log.info("user.password_reset", user_id=str(user.id))
    return user


async def update_password(
    session: AsyncSession, user: User, current_password: str, new_password: str
) -> User:
    if not user.password_hash or not verify_password(current_password, user.password_hash):
        raise AuthenticationError("Your current password is wrong")

    _set_password(user, new_password, utcnow())
    session.add(user)
    await session.flush()

    log.info("user.password_changed", user_id=str(user.id))
    return user


def _set_password(user: User, new_password: str, now: datetime) -> None:
    user.password_hash = hash_password(new_password)
    user.password_changed_at = now


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


async def update_profile(session: AsyncSession, user: User, req: UserUpdateRequest) -> User:
    if req.name is not None:
        user.name = req.name
    if "image" in req.model_fields_set:
        user.image = req.image
    user.updated_at = utcnow()
    session.add(user)
    await session.flush()
    log.info("user.updated", user_id=str(user.id))
    return user


async def set_avatar(session: AsyncSession, user: User, image_url: str) -> User:
    user.image = image_url
    user.updated_at = utcnow()
    session.add(user)
    await session.flush()
    return user


async def delete_user(session: AsyncSession, user_id: uuid.UUID) -> None:
    """Delete an account and everything that cannot outlive it.

    Owned workspaces go with their full contents. Projects and tasks the
    user created elsewhere remain, with the creator cleared.
    """
    owned = await session.execute(select(Workspace.id).where(Workspace.owner_id == user_id))
    for (workspace_id,) in owned.all():
        await workspace_service.delete_workspace_cascade(session, workspace_id)

    await session.execute(delete(WorkspaceMember).where(WorkspaceMember.user_id == user_id))
    await session.execute(delete(WorkspaceInvite).where(WorkspaceInvite.invited_by == user_id))
    await session.execute(delete(TaskAssignment).where(TaskAssignment.user_id == user_id))
    await session.execute(delete(TaskComment).where(TaskComment.user_id == user_id))
    await session.execute(
        update(TaskAttachment).where(TaskAttachment.uploaded_by == user_id).values(uploaded_by=None)
    )
    await session.execute(update(Task).where(Task.creator_id == user_id).values(creator_id=None))
    await session.execute(
        update(Project).where(Project.creator_id == user_id).values(creator_id=None)
    )
    await session.execute(delete(User).where(User.id == user_id))
    await session.flush()

    log.info("user.deleted", user_id=str(user_id))


# ---------------------------------------------------------------------------
# Sweep
# ---------------------------------------------------------------------------


async def reap_unverified_accounts(session: AsyncSession, now: datetime) -> int:
    """Delete accounts whose verification window closed without verification."""
    result = await session.execute(
        select(User.id).where(
            User.email_verified.is_(False),
            User.verification_expires < now,
        )
    )
    user_ids = [row[0] for row in result.all()]
    for user_id in user_ids:
        await delete_user(session, user_id)

    log.info("sweep.unverified_accounts_reaped", count=len(user_ids))
    return len(user_ids)
