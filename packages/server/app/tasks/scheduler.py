"""
In-process recurring job scheduler.

Runs each registered job once per interval inside the API process. Time
comes from an injectable clock and waiting from an injectable sleep, so
tests can drive the loop without real delays. A job that raises is
logged and retried on its next cycle; it never stops the scheduler.
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Iterable, Optional, Protocol

import structlog

from app.models.base import utcnow

log = structlog.get_logger()

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[None]]


class RecurringJob(Protocol):
    name: str
    interval: timedelta

    async def run(self, now: datetime) -> int:
        """Do one unit of work and return the number of rows affected."""
        ...


class Scheduler:
    def __init__(
        self,
        jobs: Iterable[RecurringJob],
        *,
        clock: Clock = utcnow,
        sleep: Sleep = asyncio.sleep,
    ):
        self.jobs = list(jobs)
        self._clock = clock
        self._sleep = sleep
        self._next_run: dict[str, datetime] = {}
        self._task: Optional[asyncio.Task] = None

    async def run_pending(self) -> dict[str, int]:
        """Run every job that is due. Returns affected-row counts by job name."""
        now = self._clock()
        results: dict[str, int] = {}
        for job in self.jobs:
            due = self._next_run.get(job.name)
            if due is not None and now < due:
                continue
            self._next_run[job.name] = now + job.interval
            try:
                results[job.name] = await job.run(now)
            except Exception:
                log.exception("scheduler.job_failed", job=job.name)
        return results

    def seconds_until_next(self) -> float:
        if not self._next_run:
            return 0.0
        now = self._clock()
        soonest = min(self._next_run.values())
        return max(1.0, (soonest - now).total_seconds())

    async def run_forever(self) -> None:
        log.info("scheduler.started", jobs=[j.name for j in self.jobs])
        while True:
            await self.run_pending()
            await self._sleep(self.seconds_until_next())

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self.run_forever())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        log.info("scheduler.stopped")
