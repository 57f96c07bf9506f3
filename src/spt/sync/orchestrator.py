"""Sync orchestrator: run the reconcile + inactivity check for students.

``run_full_sync`` walks every student one at a time and isolates failures per
student. ``run_single_student_sync`` is the same per-student body for the
post-create / post-edit path and lets errors reach its caller.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from spt.db.models import Student
from spt.errors import NotFoundError
from spt.sync.inactivity import Notifier, evaluate_inactivity
from spt.sync.reconciler import ProfileSource, reconcile

logger = structlog.get_logger()


@dataclass(frozen=True)
class StudentSyncOutcome:
    student_id: int
    handle: str
    notified: bool = False


@dataclass
class SyncRunSummary:
    run_id: str = ""
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    notified: int = 0
    started_at: datetime | None = None
    finished_at: datetime | None = None


class SyncOrchestrator:
    """Drives reconciliation for one or all students."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        source: ProfileSource,
        notifier: Notifier,
    ) -> None:
        self._session_factory = session_factory
        self._source = source
        self._notifier = notifier

    async def run_full_sync(self) -> SyncRunSummary:
        """Sync every student with a handle, sequentially.

        A failure for one student is logged and counted; the run continues.
        Only a failure to list students aborts the run.
        """
        summary = SyncRunSummary(run_id=uuid.uuid4().hex[:12], started_at=datetime.now(timezone.utc))
        with structlog.contextvars.bound_contextvars(sync_run=summary.run_id):
            await self._sync_all(summary)
        return summary

    async def _sync_all(self, summary: SyncRunSummary) -> None:
        async with self._session_factory() as db:
            result = await db.execute(select(Student.id, Student.codeforces_handle).order_by(Student.id))
            targets = result.all()

        summary.total = len(targets)
        logger.info("full_sync_started", students=summary.total)

        for row in targets:
            if not row.codeforces_handle:
                logger.info("student_sync_skipped", student_id=row.id, reason="no_handle")
                summary.skipped += 1
                continue
            try:
                outcome = await self._sync_student(row.id)
            except NotFoundError as exc:
                if exc.kind == "student" and exc.key == row.id:
                    logger.warning("student_sync_skipped", student_id=row.id, reason="deleted")
                    summary.skipped += 1
                    continue
                logger.warning("student_sync_failed", student_id=row.id, handle=row.codeforces_handle, error=str(exc))
                summary.failed += 1
                continue
            except Exception:
                logger.exception("student_sync_failed", student_id=row.id, handle=row.codeforces_handle)
                summary.failed += 1
                continue

            if outcome is None:
                summary.skipped += 1
                continue
            summary.succeeded += 1
            if outcome.notified:
                summary.notified += 1

        summary.finished_at = datetime.now(timezone.utc)
        logger.info(
            "full_sync_finished",
            total=summary.total,
            succeeded=summary.succeeded,
            failed=summary.failed,
            skipped=summary.skipped,
            notified=summary.notified,
        )

    async def run_single_student_sync(self, student_id: int, handle: str) -> StudentSyncOutcome:
        """Sync one student now. Errors propagate to the caller."""
        logger.info("single_sync_started", student_id=student_id, handle=handle)
        outcome = await self._sync_student(student_id, handle)
        if outcome is None:
            # Handle was cleared between the trigger and this run
            return StudentSyncOutcome(student_id=student_id, handle=handle)
        logger.info("single_sync_finished", student_id=student_id, handle=outcome.handle)
        return outcome

    async def _sync_student(self, student_id: int, handle: str | None = None) -> StudentSyncOutcome | None:
        async with self._session_factory() as db:
            # Fresh read: the listing may be stale by the time we get here
            student = await db.get(Student, student_id)
            if student is None:
                raise NotFoundError("student", student_id)
            handle = handle or student.codeforces_handle
            if not handle:
                return None

            student = await reconcile(db, self._source, student_id, handle)

            notified = False
            if student.auto_notify_enabled:
                result = await evaluate_inactivity(db, student, self._notifier)
                notified = result.notified
            return StudentSyncOutcome(student_id=student_id, handle=handle, notified=notified)
