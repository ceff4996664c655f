"""
Invitation lifecycle: issue, accept, list, sweep.

An invite row exists only while it is outstanding. Acceptance, expiry and
supersession all delete it. Only the sha256 of the token is stored; the
plaintext goes out once, in the invitation email.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import generate_token, hash_token
from app.core.config import get_settings
from app.core.errors import AccessDenied, AlreadyMember, InviteAlreadySent, InvalidOrExpiredInvite
from app.models.base import as_utc, utcnow
from app.models.user import User
from app.models.workspace import Workspace
from app.models.workspace_invite import WorkspaceInvite
from app.models.workspace_member import WorkspaceMember
from app.services import email as email_service
from app.services import membership
from app.services.membership import Authority
from taskard_shared.schemas.workspaces import InviteCreateRequest

log = structlog.get_logger()
settings = get_settings()


async def issue_invite(
    session: AsyncSession,
    workspace: Workspace,
    inviter: User,
    inviter_authority: Authority,
    req: InviteCreateRequest,
    *,
    now: Optional[datetime] = None,
) -> WorkspaceInvite:
    """Create an invite and email its token to the recipient."""
    if not membership.can_manage_workspace(inviter_authority):
        raise AccessDenied()

    now = now or utcnow()
    email = req.email.strip().lower()

    result = await session.execute(select(User).where(User.email == email))
    recipient = result.scalar_one_or_none()
    if recipient and await membership.is_member_or_owner(session, recipient.id, workspace):
        raise AlreadyMember()

    result = await session.execute(
        select(WorkspaceInvite).where(
            WorkspaceInvite.email == email,
            WorkspaceInvite.workspace_id == workspace.id,
        )
    )
    existing = result.scalar_one_or_none()
    if existing and as_utc(existing.expires) > now:
        raise InviteAlreadySent()
    if existing:
        await session.delete(existing)
        await session.flush()
        log.info("invite.superseded", invite_id=str(existing.id), workspace_id=str(workspace.id))

    token, token_hash = generate_token()
    invite = WorkspaceInvite(
        email=email,
        role=req.role.value,
        token=token_hash,
        expires=now + timedelta(days=settings.invite_ttl_days),
        workspace_id=workspace.id,
        invited_by=inviter.id,
    )
    session.add(invite)
    await session.flush()

    await email_service.send_workspace_invite_email(
        to=email,
        workspace_id=str(workspace.id),
        workspace_name=workspace.name,
        inviter_name=inviter.name,
        token=token,
    )

    log.info(
        "invite.issued",
        invite_id=str(invite.id),
        workspace_id=str(workspace.id),
        role=invite.role,
        invited_by=str(inviter.id),
    )
    return invite


async def accept_invite(
    session: AsyncSession,
    acceptor: User,
    workspace_id: uuid.UUID,
    token: str,
    *,
    now: Optional[datetime] = None,
) -> WorkspaceMember:
    """Turn an outstanding invite into a membership row, exactly once.

    Existing membership is checked before the token, so a member presenting
    any token, valid or not, gets AlreadyMember. That is what a repeated
    accept of an already-consumed invite reports.
    """
    now = now or utcnow()

    workspace = await session.get(Workspace, workspace_id)
    if not workspace:
        raise InvalidOrExpiredInvite()

    if await membership.is_member_or_owner(session, acceptor.id, workspace):
        raise AlreadyMember("You are already a member of this workspace")

    result = await session.execute(
        select(WorkspaceInvite).where(
            WorkspaceInvite.token == hash_token(token),
            WorkspaceInvite.workspace_id == workspace_id,
            WorkspaceInvite.email == acceptor.email.lower(),
            WorkspaceInvite.expires > now,
        )
    )
    invite = result.scalar_one_or_none()
    if not invite:
        raise InvalidOrExpiredInvite()

    # Re-check immediately before the insert; a concurrent accept may have won.
    if await membership.get_membership(session, acceptor.id, workspace_id):
        raise AlreadyMember("You are already a member of this workspace")

    member = WorkspaceMember(user_id=acceptor.id, workspace_id=workspace_id, role=invite.role)
    session.add(member)
    await session.delete(invite)
    await session.flush()

    log.info(
        "invite.accepted",
        invite_id=str(invite.id),
        workspace_id=str(workspace_id),
        user_id=str(acceptor.id),
        role=member.role,
    )
    return member


async def list_pending_invites(
    session: AsyncSession, workspace: Workspace, *, now: Optional[datetime] = None
) -> list[WorkspaceInvite]:
    now = now or utcnow()
    result = await session.execute(
        select(WorkspaceInvite)
        .where(WorkspaceInvite.workspace_id == workspace.id, WorkspaceInvite.expires > now)
        .order_by(WorkspaceInvite.created_at.desc())
    )
    return list(result.scalars().all())


async def reap_expired_invites(session: AsyncSession, now: datetime) -> int:
    """Delete every invite whose expiry has passed."""
    result = await session.execute(delete(WorkspaceInvite).where(WorkspaceInvite.expires < now))
    await session.flush()
    count = result.rowcount or 0
    log.info("sweep.invites_reaped", count=count)
    return count
