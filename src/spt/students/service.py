"""Student persistence operations for the admin/HTTP layer, which imports this module.

These functions only touch the database. After a successful commit the caller
fires the matching ``SyncEvents`` hook (create, handle change, delete).
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from spt.db.models import ContestResult, Student, SubmissionRecord
from spt.errors import NotFoundError


class DuplicateStudentError(ValueError):
    """Another student already uses this handle or email."""

    def __init__(self, field: str, value: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Another student with this {field} already exists: {value}")


def normalize_handle(handle: str) -> str:
    """Handles are unique case-insensitively; store them trimmed and lower-cased."""
    return handle.strip().lower()


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def _ensure_unique(
    db: AsyncSession,
    handle: str | None,
    email: str | None,
    exclude_id: int | None = None,
) -> None:
    clauses = []
    if handle is not None:
        clauses.append(Student.codeforces_handle == handle)
    if email is not None:
        clauses.append(Student.email == email)
    if not clauses:
        return

    query = select(Student).where(or_(*clauses))
    if exclude_id is not None:
        query = query.where(Student.id != exclude_id)
    existing = (await db.execute(query.limit(1))).scalar_one_or_none()
    if existing is None:
        return
    if handle is not None and existing.codeforces_handle == handle:
        raise DuplicateStudentError("Codeforces handle", handle)
    raise DuplicateStudentError("email", existing.email)


async def get_student(db: AsyncSession, student_id: int) -> Student:
    student = await db.get(Student, student_id)
    if student is None:
        raise NotFoundError("student", student_id)
    return student


async def list_students(db: AsyncSession) -> Sequence[Student]:
    result = await db.execute(select(Student).order_by(Student.id))
    return result.scalars().all()


async def create_student(
    db: AsyncSession,
    name: str,
    email: str,
    codeforces_handle: str,
    phone_number: str | None = None,
    auto_notify_enabled: bool = True,
) -> Student:
    """Insert a student. The caller triggers the initial sync after this returns."""
    handle = normalize_handle(codeforces_handle)
    email = normalize_email(email)
    await _ensure_unique(db, handle, email)

    student = Student(
        name=name.strip(),
        email=email,
        phone_number=phone_number,
        codeforces_handle=handle,
        auto_notify_enabled=auto_notify_enabled,
    )
    db.add(student)
    await db.commit()
    await db.refresh(student)
    return student


async def update_student(
    db: AsyncSession,
    student_id: int,
    name: str | None = None,
    email: str | None = None,
    codeforces_handle: str | None = None,
    phone_number: str | None = None,
    auto_notify_enabled: bool | None = None,
) -> tuple[Student, bool]:
    """Apply the provided fields. Returns ``(student, handle_changed)``."""
    student = await get_student(db, student_id)

    new_handle = normalize_handle(codeforces_handle) if codeforces_handle else None
    new_email = normalize_email(email) if email else None
    handle_changed = new_handle is not None and new_handle != student.codeforces_handle

    await _ensure_unique(
        db,
        new_handle if handle_changed else None,
        new_email if new_email and new_email != student.email else None,
        exclude_id=student_id,
    )

    if name:
        student.name = name.strip()
    if new_email:
        student.email = new_email
    if phone_number is not None:
        student.phone_number = phone_number
    if handle_changed:
        student.codeforces_handle = new_handle
    if auto_notify_enabled is not None:
        student.auto_notify_enabled = auto_notify_enabled
    student.updated_at = datetime.now(timezone.utc)

    await db.commit()
    return student, handle_changed


async def delete_student(db: AsyncSession, student_id: int) -> None:
    """Delete a student together with its contest results and submissions."""
    student = await get_student(db, student_id)
    await db.execute(delete(ContestResult).where(ContestResult.student_id == student_id))
    await db.execute(delete(SubmissionRecord).where(SubmissionRecord.student_id == student_id))
    await db.delete(student)
    await db.commit()


async def get_contest_history(db: AsyncSession, student_id: int) -> Sequence[ContestResult]:
    result = await db.execute(
        select(ContestResult).where(ContestResult.student_id == student_id).order_by(ContestResult.contest_time)
    )
    return result.scalars().all()


async def get_submissions(db: AsyncSession, student_id: int) -> Sequence[SubmissionRecord]:
    result = await db.execute(
        select(SubmissionRecord)
        .where(SubmissionRecord.student_id == student_id)
        .order_by(SubmissionRecord.submitted_at)
    )
    return result.scalars().all()
