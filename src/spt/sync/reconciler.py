"""Dataset reconciler: replace one student's Codeforces data with a fresh fetch.

The student's contest results and submissions are never patched. Every
successful sync deletes the old rows and bulk-inserts the new ones, then
recomputes the rating fields. All of it runs in the caller's session and is
committed once, so on a transactional store the replacement lands completely
or not at all.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog
from sqlalchemy import delete, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from spt.codeforces.schemas import ContestEntry, ExternalProfile, SubmissionEntry
from spt.db.models import ContestResult, Student, SubmissionRecord
from spt.errors import NotFoundError, PersistenceError

logger = structlog.get_logger()


class ProfileSource(Protocol):
    async def fetch_profile(self, handle: str) -> ExternalProfile: ...


def compute_ratings(contests: Sequence[ContestEntry]) -> tuple[int, int]:
    """Return ``(current_rating, max_rating)`` for contests in source order.

    Current is the last entry's rating after the contest; max is the highest
    rating after any contest. No contests means a rating of zero.
    """
    if not contests:
        return 0, 0
    return contests[-1].rating_after, max(entry.rating_after for entry in contests)


def contest_rows(student_id: int, contests: Sequence[ContestEntry]) -> list[dict[str, Any]]:
    rows = []
    for entry in contests:
        after = entry.rating_after
        rows.append({
            "student_id": student_id,
            "contest_id": entry.contest_id,
            "contest_name": entry.contest_name,
            "contest_time": entry.contest_time,
            "rank": entry.rank,
            "rating_before": entry.old_rating,
            "rating_after": after,
            # Recomputed; the source's ratingChange is not trusted
            "rating_delta": after - entry.old_rating,
            "problems_solved": entry.problems_solved,
        })
    return rows


def submission_rows(student_id: int, submissions: Sequence[SubmissionEntry]) -> list[dict[str, Any]]:
    return [
        {
            "student_id": student_id,
            "submission_id": entry.id,
            "problem_id": entry.problem_id,
            "problem_name": entry.problem.name,
            "problem_rating": entry.problem.rating,
            "verdict": entry.verdict,
            "submitted_at": entry.submitted_at,
            "contest_id": entry.contest_id,
            "programming_language": entry.programming_language,
        }
        for entry in submissions
    ]


async def reconcile(
    db: AsyncSession,
    source: ProfileSource,
    student_id: int,
    handle: str,
    now: datetime | None = None,
) -> Student:
    """Fetch ``handle`` and replace the stored dataset of ``student_id``.

    Ordering: old rows deleted, new rows inserted, rating fields and
    ``last_synced_at`` updated, then a single commit.

    Raises:
        NotFoundError: Student vanished, or the handle is unknown to Codeforces.
        TransientError: Fetch failed; nothing was written.
        PersistenceError: A database write failed; the session was rolled back.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    try:
        student = await db.get(Student, student_id)
    except SQLAlchemyError as exc:
        msg = f"Failed to load student {student_id}"
        raise PersistenceError(msg) from exc
    if student is None:
        raise NotFoundError("student", student_id)

    # Fetch errors propagate unchanged, before any write
    profile = await source.fetch_profile(handle)

    current, best = compute_ratings(profile.contest_history)
    contests = contest_rows(student_id, profile.contest_history)
    submissions = submission_rows(student_id, profile.submissions)

    try:
        await db.execute(delete(ContestResult).where(ContestResult.student_id == student_id))
        await db.execute(delete(SubmissionRecord).where(SubmissionRecord.student_id == student_id))
        if contests:
            await db.execute(insert(ContestResult), contests)
        if submissions:
            await db.execute(insert(SubmissionRecord), submissions)

        student.current_rating = current
        student.max_rating = best
        student.last_synced_at = now
        student.updated_at = now
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("reconcile_write_failed", student_id=student_id, handle=handle, error=str(exc))
        msg = f"Failed to store Codeforces data for student {student_id}"
        raise PersistenceError(msg) from exc

    if not contests:
        logger.info("reconcile_no_contests", student_id=student_id, handle=handle)
    logger.info(
        "student_reconciled",
        student_id=student_id,
        handle=handle,
        contests=len(contests),
        submissions=len(submissions),
        current_rating=current,
        max_rating=best,
    )
    return student
