"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable, Iterable
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from spt.codeforces.schemas import ExternalProfile
from spt.config import get_settings
from spt.database import close_db, create_tables, get_session_factory, init_db
from spt.db.models import Student

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def _epoch(when: datetime) -> int:
    return int(when.timestamp())


def contest_payload(
    contest_id: int,
    old_rating: int,
    new_rating: int,
    when: datetime,
    rank: int = 100,
    rating_change: int | None = None,
) -> dict[str, Any]:
    """One ``user.rating`` element as the API returns it."""
    return {
        "contestId": contest_id,
        "contestName": f"Codeforces Round {contest_id}",
        "handle": "ignored",
        "rank": rank,
        "ratingUpdateTimeSeconds": _epoch(when),
        "oldRating": old_rating,
        "newRating": new_rating,
        "ratingChange": new_rating - old_rating if rating_change is None else rating_change,
    }


def submission_payload(
    submission_id: int,
    when: datetime,
    verdict: str | None = "OK",
    index: str = "A",
    contest_id: int | None = 1000,
    rating: int | None = 800,
) -> dict[str, Any]:
    """One ``user.status`` element as the API returns it."""
    problem: dict[str, Any] = {"index": index, "name": f"Problem {index}"}
    if contest_id is not None:
        problem["contestId"] = contest_id
    if rating is not None:
        problem["rating"] = rating
    payload: dict[str, Any] = {
        "id": submission_id,
        "creationTimeSeconds": _epoch(when),
        "problem": problem,
        "programmingLanguage": "GNU C++17",
    }
    if contest_id is not None:
        payload["contestId"] = contest_id
    if verdict is not None:
        payload["verdict"] = verdict
    return payload


class FakeSource:
    """In-memory stand-in for the Codeforces client."""

    def __init__(self) -> None:
        self.profiles: dict[str, ExternalProfile] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[str] = []

    def set_profile(
        self,
        handle: str,
        contests: Iterable[dict[str, Any]] = (),
        submissions: Iterable[dict[str, Any]] = (),
    ) -> None:
        self.profiles[handle] = ExternalProfile.model_validate(
            {"handle": handle, "contest_history": list(contests), "submissions": list(submissions)}
        )

    async def fetch_profile(self, handle: str) -> ExternalProfile:
        self.calls.append(handle)
        if handle in self.errors:
            raise self.errors[handle]
        return self.profiles.get(handle) or ExternalProfile(handle=handle)


@pytest.fixture(autouse=True)
def _fresh_settings() -> None:
    """Drop cached settings so env overrides from one test never leak into another."""
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database with all tables."""
    await init_db(TEST_DATABASE_URL)
    await create_tables()
    yield get_session_factory()
    await close_db()


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test setup and assertions."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def notifier() -> MagicMock:
    """Notifier double; ``send`` succeeds unless a test sets a side effect."""
    mock = MagicMock()
    mock.send = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def contest() -> Callable[..., dict[str, Any]]:
    return contest_payload


@pytest.fixture
def submission() -> Callable[..., dict[str, Any]]:
    return submission_payload


@pytest.fixture
def add_student(session_factory: async_sessionmaker[AsyncSession]) -> Callable[..., Any]:
    """Insert a student row in its own session and return its id."""

    async def _add(handle: str, auto_notify_enabled: bool = True, notification_count: int = 0) -> int:
        async with session_factory() as db:
            student = Student(
                name=handle.title(),
                email=f"{handle}@example.com",
                codeforces_handle=handle,
                auto_notify_enabled=auto_notify_enabled,
                inactivity_notification_count=notification_count,
            )
            db.add(student)
            await db.commit()
            return student.id

    return _add


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)
