"""Cron-driven scheduler for the full sync run.

One ``Scheduler`` is built at process start and shared by whatever needs to
restart it. It owns at most one timer task. Each (re)start re-reads the
schedule from the settings row; each firing stamps ``last_run_at`` and hands
``run_full_sync`` to the background task runner without waiting for it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

import structlog
from croniter import croniter
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from spt.config import get_settings
from spt.errors import InvalidScheduleError
from spt.sync.orchestrator import SyncOrchestrator
from spt.sync.settings_service import get_or_create_settings, record_run, validate_schedule
from spt.sync.tasks import BackgroundTasks

logger = structlog.get_logger()

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_fire_time(schedule: str, after: datetime) -> datetime:
    """Next firing of ``schedule`` strictly after ``after``, evaluated in UTC."""
    if after.tzinfo is None:
        after = after.replace(tzinfo=timezone.utc)
    return croniter(schedule, after.astimezone(timezone.utc)).get_next(datetime)


class Scheduler:
    """Stopped <-> Running state machine around a single timer task."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        orchestrator: SyncOrchestrator,
        tasks: BackgroundTasks,
        clock: Clock = _utcnow,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._session_factory = session_factory
        self._orchestrator = orchestrator
        self._tasks = tasks
        self._clock = clock
        self._sleep = sleep
        self._timer: asyncio.Task[None] | None = None
        self._schedule: str | None = None

    @property
    def is_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def timer(self) -> asyncio.Task[None] | None:
        return self._timer

    @property
    def schedule(self) -> str | None:
        """Schedule the live timer was armed with, None when stopped."""
        return self._schedule if self.is_running else None

    def next_fire_time(self) -> datetime | None:
        if not self.is_running or self._schedule is None:
            return None
        return next_fire_time(self._schedule, self._clock())

    async def start(self) -> str:
        """(Re)arm the timer from the persisted schedule. Returns the schedule used."""
        self.stop()

        async with self._session_factory() as db:
            settings = await get_or_create_settings(db)
            schedule = settings.cron_schedule

        try:
            validate_schedule(schedule)
        except InvalidScheduleError:
            fallback = get_settings().default_sync_schedule
            logger.error("scheduler_invalid_schedule", schedule=schedule, fallback=fallback)
            schedule = fallback

        # No await between stop() and here, so a concurrent start() cannot interleave
        self.stop()
        self._schedule = schedule
        self._timer = asyncio.create_task(self._run_timer(schedule), name="sync-scheduler")
        logger.info(
            "scheduler_started",
            schedule=schedule,
            next_run=next_fire_time(schedule, self._clock()).isoformat(),
        )
        return schedule

    def stop(self) -> None:
        """Cancel the live timer, if any. In-flight sync runs are not touched."""
        if self._timer is None:
            return
        if not self._timer.done():
            self._timer.cancel()
            logger.info("scheduler_stopped", schedule=self._schedule)
        self._timer = None
        self._schedule = None

    async def restart(self) -> str:
        self.stop()
        return await self.start()

    async def _run_timer(self, schedule: str) -> None:
        after = self._clock()
        while True:
            fire_at = next_fire_time(schedule, after)
            delay = max((fire_at - self._clock()).total_seconds(), 0.0)
            await self._sleep(delay)
            self._fire(schedule)
            # Never fire the same slot twice if the sleep woke up early
            after = max(fire_at, self._clock())

    def _fire(self, schedule: str) -> None:
        logger.info("scheduler_fired", schedule=schedule)
        self._tasks.submit(self._run_once(), name="full-sync")

    async def _run_once(self) -> None:
        async with self._session_factory() as db:
            await record_run(db, self._clock())
        await self._orchestrator.run_full_sync()
