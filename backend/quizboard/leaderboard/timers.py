"""Recurring timer backends for the refresh scheduler."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Protocol
from uuid import uuid4

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[None]]


class TimerHandle(Protocol):
    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class TimerBackend(Protocol):
    def schedule(self, interval_seconds: float, callback: TickCallback) -> TimerHandle: ...


class APSchedulerTimerHandle:
    def __init__(self, job: Job):
        self._job = job
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def job_id(self) -> str:
        return self._job.id

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        try:
            self._job.remove()
        except JobLookupError:
            logger.debug(f"Timer job {self._job.id} already removed")


class APSchedulerTimerBackend:
    """Interval timers on APScheduler's asyncio scheduler.

    Must be used from a running event loop. The scheduler is started on the
    first ``schedule`` call. APScheduler finishes its asyncio shutdown on the
    next loop iteration, so ``shutdown`` tracks its own stopped flag and may
    be called more than once.
    """

    def __init__(self, scheduler: AsyncIOScheduler | None = None):
        self.scheduler = scheduler or AsyncIOScheduler()
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def schedule(self, interval_seconds: float, callback: TickCallback) -> APSchedulerTimerHandle:
        if self._stopped:
            raise RuntimeError("Refresh timer scheduler has been shut down")
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("✓ Refresh timer scheduler started")

        job = self.scheduler.add_job(
            callback,
            IntervalTrigger(seconds=interval_seconds),
            id=f"leaderboard-refresh-{uuid4().hex[:8]}",
            name="Leaderboard: Live Refresh",
            coalesce=True,
            max_instances=1,
        )
        logger.debug(f"Armed timer {job.id} (every {interval_seconds}s)")
        return APSchedulerTimerHandle(job)

    def shutdown(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("✓ Refresh timer scheduler stopped")


class ManualTimerHandle:
    def __init__(self, interval_seconds: float, callback: TickCallback):
        self.interval_seconds = interval_seconds
        self.callback = callback
        self.elapsed = 0.0
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        self._active = False


class ManualTimerBackend:
    """Timer driven by explicit ``tick``/``advance`` calls instead of a clock."""

    def __init__(self) -> None:
        self.handles: list[ManualTimerHandle] = []

    def schedule(self, interval_seconds: float, callback: TickCallback) -> ManualTimerHandle:
        handle = ManualTimerHandle(interval_seconds, callback)
        self.handles.append(handle)
        return handle

    @property
    def active_handles(self) -> list[ManualTimerHandle]:
        return [h for h in self.handles if h.active]

    async def tick(self) -> None:
        """Fire every armed timer once."""
        for handle in self.active_handles:
            await handle.callback()

    async def advance(self, seconds: float) -> None:
        """Move the clock forward, firing timers whose interval elapsed."""
        for handle in self.active_handles:
            handle.elapsed += seconds
            while handle.active and handle.elapsed >= handle.interval_seconds:
                handle.elapsed -= handle.interval_seconds
                await handle.callback()
