"""Dataset reconciler tests: full replacement and rating recomputation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from spt.codeforces.schemas import ContestEntry
from spt.db.models import ContestResult, Student, SubmissionRecord
from spt.errors import NotFoundError, PersistenceError, TransientError
from spt.sync.reconciler import compute_ratings, reconcile

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


async def _count(db, model, student_id: int) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(model.student_id == student_id))
    return result.scalar_one()


class TestComputeRatings:
    def test_empty_history_is_zero(self):
        assert compute_ratings([]) == (0, 0)

    def test_current_is_last_and_max_is_highest(self, contest):
        entries = [
            ContestEntry.model_validate(contest(1, 1000, 1200, T0)),
            ContestEntry.model_validate(contest(2, 1200, 1150, T0 + timedelta(days=7))),
        ]
        assert compute_ratings(entries) == (1150, 1200)


class TestReconcile:
    async def test_replaces_dataset_and_ratings(self, session_factory, fake_source, add_student, contest, submission):
        student_id = await add_student("alice")
        # Source deltas are deliberately wrong; stored deltas are recomputed
        fake_source.set_profile(
            "alice",
            contests=[
                contest(1, 1000, 1200, T0, rating_change=999),
                contest(2, 1200, 1150, T0 + timedelta(days=7), rating_change=0),
            ],
            submissions=[
                submission(10, T0, index="A", contest_id=1),
                submission(11, T0 + timedelta(hours=1), verdict="WRONG_ANSWER", index="B", contest_id=1),
            ],
        )
        now = T0 + timedelta(days=30)

        async with session_factory() as db:
            student = await reconcile(db, fake_source, student_id, "alice", now=now)
            assert student.current_rating == 1150
            assert student.max_rating == 1200
            assert student.last_synced_at == now

        async with session_factory() as db:
            rows = (
                await db.execute(
                    select(ContestResult)
                    .where(ContestResult.student_id == student_id)
                    .order_by(ContestResult.contest_id)
                )
            ).scalars().all()
            assert [(r.contest_id, r.rating_before, r.rating_after, r.rating_delta) for r in rows] == [
                (1, 1000, 1200, 200),
                (2, 1200, 1150, -50),
            ]
            subs = (
                await db.execute(
                    select(SubmissionRecord)
                    .where(SubmissionRecord.student_id == student_id)
                    .order_by(SubmissionRecord.submission_id)
                )
            ).scalars().all()
            assert [(s.submission_id, s.problem_id, s.verdict) for s in subs] == [
                (10, "A-1", "OK"),
                (11, "B-1", "WRONG_ANSWER"),
            ]

    async def test_old_rows_are_removed(self, session_factory, fake_source, add_student, contest, submission):
        student_id = await add_student("bob")
        fake_source.set_profile(
            "bob",
            contests=[contest(1, 0, 1400, T0), contest(2, 1400, 1500, T0 + timedelta(days=1))],
            submissions=[submission(1, T0), submission(2, T0), submission(3, T0)],
        )
        async with session_factory() as db:
            await reconcile(db, fake_source, student_id, "bob")

        fake_source.set_profile("bob", contests=[contest(3, 0, 1300, T0)], submissions=[submission(4, T0)])
        async with session_factory() as db:
            await reconcile(db, fake_source, student_id, "bob")

        async with session_factory() as db:
            assert await _count(db, ContestResult, student_id) == 1
            assert await _count(db, SubmissionRecord, student_id) == 1
            student = await db.get(Student, student_id)
            assert student.current_rating == 1300
            assert student.max_rating == 1300

    async def test_empty_history_resets_ratings(self, session_factory, fake_source, add_student, contest):
        student_id = await add_student("carol")
        fake_source.set_profile("carol", contests=[contest(1, 0, 1600, T0)])
        async with session_factory() as db:
            await reconcile(db, fake_source, student_id, "carol")

        fake_source.set_profile("carol")
        async with session_factory() as db:
            student = await reconcile(db, fake_source, student_id, "carol")
            assert student.current_rating == 0
            assert student.max_rating == 0
            assert await _count(db, ContestResult, student_id) == 0

    async def test_idempotent(self, session_factory, fake_source, add_student, contest, submission):
        student_id = await add_student("dave")
        fake_source.set_profile("dave", contests=[contest(1, 0, 900, T0)], submissions=[submission(5, T0)])

        for _ in range(2):
            async with session_factory() as db:
                await reconcile(db, fake_source, student_id, "dave")

        async with session_factory() as db:
            assert await _count(db, ContestResult, student_id) == 1
            assert await _count(db, SubmissionRecord, student_id) == 1

    async def test_missing_student(self, session_factory, fake_source):
        async with session_factory() as db:
            with pytest.raises(NotFoundError) as exc_info:
                await reconcile(db, fake_source, 404, "nobody")
        assert exc_info.value.kind == "student"
        assert fake_source.calls == []

    async def test_fetch_failure_leaves_data_untouched(
        self, session_factory, fake_source, add_student, contest, submission
    ):
        student_id = await add_student("erin")
        fake_source.set_profile("erin", contests=[contest(1, 0, 1100, T0)], submissions=[submission(1, T0)])
        async with session_factory() as db:
            await reconcile(db, fake_source, student_id, "erin")

        fake_source.errors["erin"] = TransientError("timeout")
        async with session_factory() as db:
            with pytest.raises(TransientError):
                await reconcile(db, fake_source, student_id, "erin")

        async with session_factory() as db:
            assert await _count(db, ContestResult, student_id) == 1
            assert await _count(db, SubmissionRecord, student_id) == 1
            student = await db.get(Student, student_id)
            assert student.current_rating == 1100

    async def test_unknown_handle_propagates(self, session_factory, fake_source, add_student):
        student_id = await add_student("frank")
        fake_source.errors["frank"] = NotFoundError("handle", "frank")
        async with session_factory() as db:
            with pytest.raises(NotFoundError) as exc_info:
                await reconcile(db, fake_source, student_id, "frank")
        assert exc_info.value.kind == "handle"

    async def test_failed_write_rolls_back(self, session_factory, fake_source, add_student, contest, submission):
        """A write failing after the delete step keeps the previous dataset."""
        student_id = await add_student("gina")
        fake_source.set_profile("gina", contests=[contest(1, 0, 1100, T0)], submissions=[submission(7, T0)])
        async with session_factory() as db:
            await reconcile(db, fake_source, student_id, "gina")

        # Repeated submission id violates the per-student unique key on insert
        fake_source.set_profile(
            "gina",
            contests=[contest(2, 1100, 1700, T0 + timedelta(days=1))],
            submissions=[submission(8, T0), submission(8, T0 + timedelta(minutes=5))],
        )
        async with session_factory() as db:
            with pytest.raises(PersistenceError):
                await reconcile(db, fake_source, student_id, "gina")

        async with session_factory() as db:
            contests = (
                await db.execute(select(ContestResult.contest_id).where(ContestResult.student_id == student_id))
            ).scalars().all()
            submissions = (
                await db.execute(
                    select(SubmissionRecord.submission_id).where(SubmissionRecord.student_id == student_id)
                )
            ).scalars().all()
            student = await db.get(Student, student_id)
            assert contests == [1]
            assert submissions == [7]
            assert student.current_rating == 1100
            assert student.max_rating == 1100
