"""ORM models for tracked students, their synced Codeforces data, and sync settings."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spt.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------


class Student(Base):
    """A tracked student. Handle and email are stored trimmed and lower-cased."""

    __tablename__ = "students"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    codeforces_handle: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    current_rating: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    max_rating: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    inactivity_notification_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    auto_notify_enabled: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    # --- Relationships ---
    contests: Mapped[list[ContestResult]] = relationship(
        "ContestResult",
        back_populates="student",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    submissions: Mapped[list[SubmissionRecord]] = relationship(
        "SubmissionRecord",
        back_populates="student",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# ---------------------------------------------------------------------------
# Codeforces: contest results
# ---------------------------------------------------------------------------


class ContestResult(Base):
    """One rated contest for a student. Replaced wholesale on every sync."""

    __tablename__ = "contest_results"
    __table_args__ = (
        UniqueConstraint("student_id", "contest_id", name="contest_results_student_contest_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    contest_id: Mapped[int] = mapped_column(Integer, nullable=False)
    contest_name: Mapped[str] = mapped_column(String(256), nullable=False)
    contest_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    rating_before: Mapped[int] = mapped_column(Integer, nullable=False)
    rating_after: Mapped[int] = mapped_column(Integer, nullable=False)
    rating_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    problems_solved: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)

    student: Mapped[Student] = relationship("Student", back_populates="contests")


# ---------------------------------------------------------------------------
# Codeforces: submissions
# ---------------------------------------------------------------------------


class SubmissionRecord(Base):
    """One submission for a student. Replaced wholesale on every sync."""

    __tablename__ = "submission_records"
    __table_args__ = (
        UniqueConstraint("student_id", "submission_id", name="submission_records_student_submission_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    submission_id: Mapped[int] = mapped_column(Integer, nullable=False)
    problem_id: Mapped[str] = mapped_column(String(64), nullable=False)
    problem_name: Mapped[str] = mapped_column(String(256), nullable=False)
    problem_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    verdict: Mapped[str] = mapped_column(String(64), nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    contest_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    programming_language: Mapped[str | None] = mapped_column(String(128), nullable=True)

    student: Mapped[Student] = relationship("Student", back_populates="submissions")


# ---------------------------------------------------------------------------
# Sync settings (singleton row)
# ---------------------------------------------------------------------------


class SyncSettings(Base):
    """Global sync configuration. Exactly one row, keyed by ``singleton_id``."""

    __tablename__ = "sync_settings"

    singleton_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    cron_schedule: Mapped[str] = mapped_column(String(128), nullable=False)
    # Display-only; cron_schedule is authoritative
    frequency_unit: Mapped[str] = mapped_column(String(16), default="day", server_default="day", nullable=False)
    frequency_value: Mapped[int] = mapped_column(Integer, default=1, server_default="1", nullable=False)
    last_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
