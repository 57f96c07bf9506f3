"""Inactivity evaluator: 7-day window, counter updates, reminder delivery."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from spt.db.models import Student, SubmissionRecord
from spt.errors import NotifierError
from spt.sync.inactivity import evaluate_inactivity, has_recent_accepted_submission


async def _add_submission(db, student_id: int, when: datetime, verdict: str = "OK", submission_id: int = 1) -> None:
    db.add(
        SubmissionRecord(
            student_id=student_id,
            submission_id=submission_id,
            problem_id=f"A-{submission_id}",
            problem_name="Problem A",
            problem_rating=800,
            verdict=verdict,
            submitted_at=when,
        )
    )
    await db.commit()


class TestRecentAccepted:
    async def test_inside_window(self, db_session, add_student, now):
        student_id = await add_student("alice")
        await _add_submission(db_session, student_id, now - timedelta(days=6, hours=23, minutes=59))
        assert await has_recent_accepted_submission(db_session, student_id, now) is True

    async def test_outside_window(self, db_session, add_student, now):
        student_id = await add_student("alice")
        await _add_submission(db_session, student_id, now - timedelta(days=7, minutes=1))
        assert await has_recent_accepted_submission(db_session, student_id, now) is False

    async def test_exact_boundary_counts(self, db_session, add_student, now):
        student_id = await add_student("alice")
        await _add_submission(db_session, student_id, now - timedelta(days=7))
        assert await has_recent_accepted_submission(db_session, student_id, now) is True

    async def test_only_accepted_counts(self, db_session, add_student, now):
        student_id = await add_student("alice")
        await _add_submission(db_session, student_id, now - timedelta(hours=1), verdict="WRONG_ANSWER")
        assert await has_recent_accepted_submission(db_session, student_id, now) is False


class TestEvaluateInactivity:
    async def test_inactive_increments_and_notifies(self, db_session, add_student, notifier, now):
        student_id = await add_student("bob", notification_count=2)
        await _add_submission(db_session, student_id, now - timedelta(days=10))
        student = await db_session.get(Student, student_id)

        result = await evaluate_inactivity(db_session, student, notifier, now=now)

        assert result.active is False
        assert result.notified is True
        assert result.notification_count == 3
        notifier.send.assert_awaited_once_with("bob@example.com", "Bob", 3)
        await db_session.refresh(student)
        assert student.inactivity_notification_count == 3

    async def test_no_submissions_is_inactive(self, db_session, add_student, notifier, now):
        student_id = await add_student("carol")
        student = await db_session.get(Student, student_id)

        result = await evaluate_inactivity(db_session, student, notifier, now=now)

        assert result.notification_count == 1
        notifier.send.assert_awaited_once()

    async def test_active_resets_counter(self, db_session, add_student, notifier, now):
        student_id = await add_student("dave", notification_count=4)
        await _add_submission(db_session, student_id, now - timedelta(days=1))
        student = await db_session.get(Student, student_id)

        result = await evaluate_inactivity(db_session, student, notifier, now=now)

        assert result.active is True
        assert result.notified is False
        notifier.send.assert_not_awaited()
        await db_session.refresh(student)
        assert student.inactivity_notification_count == 0

    async def test_active_with_zero_counter_is_untouched(self, db_session, add_student, notifier, now):
        student_id = await add_student("erin")
        await _add_submission(db_session, student_id, now - timedelta(days=1))
        student = await db_session.get(Student, student_id)
        updated_at = student.updated_at

        result = await evaluate_inactivity(db_session, student, notifier, now=now)

        assert result.notification_count == 0
        assert student.inactivity_notification_count == 0
        assert student.updated_at == updated_at
        notifier.send.assert_not_awaited()

    @pytest.mark.parametrize("error", [NotifierError("smtp down"), RuntimeError("boom")])
    async def test_notifier_failure_is_swallowed(self, db_session, add_student, notifier, now, error):
        student_id = await add_student("frank")
        student = await db_session.get(Student, student_id)
        notifier.send.side_effect = error

        result = await evaluate_inactivity(db_session, student, notifier, now=now)

        assert result.notified is False
        assert result.notification_count == 1
        await db_session.refresh(student)
        # The counter was committed before the send was attempted
        assert student.inactivity_notification_count == 1
