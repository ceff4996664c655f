"""
Hourly consistency sweeps: expired invitations and unverified accounts.

Both jobs only delete rows that every request path already treats as
dead, so they run alongside live traffic without coordination.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import structlog

from app.core.config import get_settings
from app.core.database import get_session_context
from app.services.accounts import reap_unverified_accounts
from app.services.invitations import reap_expired_invites

log = structlog.get_logger()
settings = get_settings()


class _SweepJob:
    name = "sweep"

    def __init__(self, interval: timedelta | None = None, session_context=get_session_context):
        self.interval = interval or timedelta(seconds=settings.sweep_interval_seconds)
        self._session_context = session_context

    async def _sweep(self, session, now: datetime) -> int:
        raise NotImplementedError

    async def run(self, now: datetime) -> int:
        async with self._session_context() as session:
            return await self._sweep(session, now)


class ExpiredInviteReaper(_SweepJob):
    name = "expired_invites"

    async def _sweep(self, session, now: datetime) -> int:
        return await reap_expired_invites(session, now)


class UnverifiedAccountReaper(_SweepJob):
    name = "unverified_accounts"

    async def _sweep(self, session, now: datetime) -> int:
        return await reap_unverified_accounts(session, now)


def default_jobs() -> list[_SweepJob]:
    return [ExpiredInviteReaper(), UnverifiedAccountReaper()]
