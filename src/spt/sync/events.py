"""Entry points the CRUD/settings layer calls after it has committed a change."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from spt.sync.orchestrator import SyncOrchestrator
from spt.sync.scheduler import Scheduler
from spt.sync.tasks import BackgroundTasks

logger = structlog.get_logger()


class SyncEvents:
    """Turns domain events into background syncs and scheduler restarts."""

    def __init__(self, orchestrator: SyncOrchestrator, scheduler: Scheduler, tasks: BackgroundTasks) -> None:
        self.orchestrator = orchestrator
        self.scheduler = scheduler
        self.tasks = tasks

    def on_student_created(self, student_id: int, handle: str) -> asyncio.Task[Any]:
        """Kick off an immediate sync; the caller does not wait for it."""
        logger.info("student_created_sync_queued", student_id=student_id, handle=handle)
        return self.tasks.submit(
            self.orchestrator.run_single_student_sync(student_id, handle),
            name=f"sync-student-{student_id}",
        )

    def on_student_handle_changed(self, student_id: int, new_handle: str) -> asyncio.Task[Any]:
        logger.info("student_handle_changed_sync_queued", student_id=student_id, handle=new_handle)
        return self.tasks.submit(
            self.orchestrator.run_single_student_sync(student_id, new_handle),
            name=f"sync-student-{student_id}",
        )

    async def on_settings_updated(self, new_schedule: str | None = None) -> str:
        """Restart the scheduler so the persisted schedule applies from the next firing."""
        schedule = await self.scheduler.restart()
        logger.info("scheduler_rescheduled", requested=new_schedule, schedule=schedule)
        return schedule

    def on_student_deleted(self, student_id: int) -> None:
        # Contest and submission rows are removed with the student row
        logger.info("student_deleted", student_id=student_id)
