"""Inactivity check run after each successful reconcile.

A student is active when they have at least one ``OK`` submission at or after
``now - 7 days``. Inactive students get their reminder counter bumped and a
reminder sent; active students have the counter reset.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from spt.db.models import Student, SubmissionRecord
from spt.errors import PersistenceError

logger = structlog.get_logger()

INACTIVITY_WINDOW = timedelta(days=7)
ACCEPTED_VERDICT = "OK"


class Notifier(Protocol):
    async def send(self, contact_address: str, display_name: str, notification_count: int) -> None: ...


@dataclass(frozen=True)
class InactivityResult:
    active: bool
    notified: bool
    notification_count: int


async def has_recent_accepted_submission(
    db: AsyncSession,
    student_id: int,
    now: datetime,
    window: timedelta = INACTIVITY_WINDOW,
) -> bool:
    """True if the student has an ``OK`` submission with ``submitted_at >= now - window``."""
    since = now - window
    result = await db.execute(
        select(SubmissionRecord.id)
        .where(
            SubmissionRecord.student_id == student_id,
            SubmissionRecord.verdict == ACCEPTED_VERDICT,
            SubmissionRecord.submitted_at >= since,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def evaluate_inactivity(
    db: AsyncSession,
    student: Student,
    notifier: Notifier,
    now: datetime | None = None,
) -> InactivityResult:
    """Update the reminder counter for ``student`` and send a reminder if inactive.

    Notifier failures are logged and swallowed. Database failures are rolled
    back and raised as PersistenceError.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    try:
        active = await has_recent_accepted_submission(db, student.id, now)
        if active:
            if student.inactivity_notification_count > 0:
                student.inactivity_notification_count = 0
                await db.commit()
                logger.info("inactivity_counter_reset", student_id=student.id)
            return InactivityResult(active=True, notified=False, notification_count=0)

        student.inactivity_notification_count += 1
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        msg = f"Failed to update inactivity counter for student {student.id}"
        raise PersistenceError(msg) from exc

    count = student.inactivity_notification_count
    try:
        await notifier.send(student.email, student.name, count)
    except Exception:
        logger.exception("inactivity_reminder_failed", student_id=student.id, count=count)
        return InactivityResult(active=False, notified=False, notification_count=count)

    logger.info("inactivity_reminder_sent", student_id=student.id, count=count)
    return InactivityResult(active=False, notified=True, notification_count=count)
