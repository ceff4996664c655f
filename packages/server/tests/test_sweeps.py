"""
Tests for the recurring sweeps and the scheduler that drives them.
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from sqlmodel import select

from app.models.base import utcnow
from app.models.user import User
from app.models.workspace import Workspace
from app.models.workspace_invite import WorkspaceInvite
from app.tasks.scheduler import Scheduler
from app.tasks.sweeps import ExpiredInviteReaper, UnverifiedAccountReaper, default_jobs


def _session_context(session_factory):
    @contextlib.asynccontextmanager
    async def _ctx():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    return _ctx


class TestExpiredInviteReaper:
    async def test_only_expired_invites_go(self, session_factory, make_user, make_workspace):
        owner = await make_user()
        ws = await make_workspace(owner)
        now = utcnow()
        async with session_factory() as s:
            s.add(WorkspaceInvite(
                email="old@example.com", token="a" * 64, workspace_id=ws.id,
                invited_by=owner.id, expires=now - timedelta(minutes=1),
            ))
            s.add(WorkspaceInvite(
                email="new@example.com", token="b" * 64, workspace_id=ws.id,
                invited_by=owner.id, expires=now + timedelta(days=7),
            ))
            await s.commit()

        job = ExpiredInviteReaper(session_context=_session_context(session_factory))
        assert await job.run(now) == 1

        async with session_factory() as s:
            left = (await s.execute(select(WorkspaceInvite.email))).scalars().all()
        assert left == ["new@example.com"]


class TestUnverifiedAccountReaper:
    async def test_expired_unverified_accounts_go(self, session_factory, make_user, make_workspace):
        now = utcnow()
        stale = await make_user(
            email_verified=False, verification_token="c" * 64,
            verification_expires=now - timedelta(hours=1),
        )
        pending = await make_user(
            email_verified=False, verification_token="d" * 64,
            verification_expires=now + timedelta(hours=1),
        )
        verified = await make_user()
        await make_workspace(stale, name="Never used")

        job = UnverifiedAccountReaper(session_context=_session_context(session_factory))
        assert await job.run(now) == 1

        async with session_factory() as s:
            ids = set((await s.execute(select(User.id))).scalars().all())
            workspaces = (await s.execute(select(Workspace))).scalars().all()
        assert ids == {pending.id, verified.id}
        assert workspaces == []


def test_default_jobs_use_configured_interval():
    jobs = default_jobs()
    assert {j.name for j in jobs} == {"expired_invites", "unverified_accounts"}
    assert len({j.interval for j in jobs}) == 1


class _Job:
    def __init__(self, name, interval=timedelta(hours=1), result=0, error=None):
        self.name = name
        self.interval = interval
        self.calls: list[datetime] = []
        self._result = result
        self._error = error

    async def run(self, now):
        self.calls.append(now)
        if self._error:
            raise self._error
        return self._result


class _Clock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class TestScheduler:
    async def test_runs_each_job_once_per_interval(self):
        clock = _Clock()
        job = _Job("a", result=3)
        scheduler = Scheduler([job], clock=clock)

        assert await scheduler.run_pending() == {"a": 3}
        clock.advance(minutes=30)
        assert await scheduler.run_pending() == {}
        clock.advance(minutes=30)
        assert await scheduler.run_pending() == {"a": 3}
        assert len(job.calls) == 2

    async def test_failing_job_does_not_stop_others(self):
        clock = _Clock()
        broken = _Job("broken", error=RuntimeError("db down"))
        healthy = _Job("healthy", result=1)
        scheduler = Scheduler([broken, healthy], clock=clock)

        with patch("app.tasks.scheduler.log") as log:
            assert await scheduler.run_pending() == {"healthy": 1}
        log.exception.assert_called_once_with("scheduler.job_failed", job="broken")

        clock.advance(hours=1)
        await scheduler.run_pending()
        assert len(broken.calls) == 2

    def test_seconds_until_next(self):
        clock = _Clock()
        scheduler = Scheduler([_Job("a")], clock=clock)
        assert scheduler.seconds_until_next() == 0.0
        scheduler._next_run["a"] = clock.now + timedelta(minutes=10)
        assert scheduler.seconds_until_next() == 600.0
        scheduler._next_run["a"] = clock.now
        assert scheduler.seconds_until_next() == 1.0

    async def test_start_and_stop(self):
        job = _Job("a")
        waits: list[float] = []

        async def sleep(seconds):
            waits.append(seconds)
            await asyncio.sleep(0)

        scheduler = Scheduler([job], clock=_Clock(), sleep=sleep)
        scheduler.start()
        for _ in range(3):
            await asyncio.sleep(0)
        await scheduler.stop()

        assert scheduler._task is None
        assert len(job.calls) == 1
        assert waits and all(w == 3600.0 for w in waits)
