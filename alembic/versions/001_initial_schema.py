"""Initial schema: students, synced Codeforces data and sync settings.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the tracker tables."""
    # --- students ---
    op.create_table(
        "students",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("phone_number", sa.String(32), nullable=True),
        sa.Column("codeforces_handle", sa.String(64), nullable=False),
        sa.Column("current_rating", sa.Integer(), server_default="0", nullable=False),
        sa.Column("max_rating", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("inactivity_notification_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("auto_notify_enabled", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("email", name="students_email_key"),
        sa.UniqueConstraint("codeforces_handle", name="students_codeforces_handle_key"),
    )

    # --- contest_results ---
    op.create_table(
        "contest_results",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column("contest_id", sa.Integer(), nullable=False),
        sa.Column("contest_name", sa.String(256), nullable=False),
        sa.Column("contest_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("rating_before", sa.Integer(), nullable=False),
        sa.Column("rating_after", sa.Integer(), nullable=False),
        sa.Column("rating_delta", sa.Integer(), nullable=False),
        sa.Column("problems_solved", sa.Integer(), server_default="0", nullable=False),
        sa.UniqueConstraint("student_id", "contest_id", name="contest_results_student_contest_key"),
    )
    op.create_index("ix_contest_results_student_id", "contest_results", ["student_id"])

    # --- submission_records ---
    op.create_table(
        "submission_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column("submission_id", sa.Integer(), nullable=False),
        sa.Column("problem_id", sa.String(64), nullable=False),
        sa.Column("problem_name", sa.String(256), nullable=False),
        sa.Column("problem_rating", sa.Integer(), nullable=True),
        sa.Column("verdict", sa.String(64), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("contest_id", sa.Integer(), nullable=True),
        sa.Column("programming_language", sa.String(128), nullable=True),
        sa.UniqueConstraint("student_id", "submission_id", name="submission_records_student_submission_key"),
    )
    op.create_index("ix_submission_records_student_id", "submission_records", ["student_id"])
    op.create_index("ix_submission_records_submitted_at", "submission_records", ["submitted_at"])

    # --- sync_settings (single row) ---
    op.create_table(
        "sync_settings",
        sa.Column("singleton_id", sa.String(32), primary_key=True),
        sa.Column("cron_schedule", sa.String(128), nullable=False),
        sa.Column("frequency_unit", sa.String(16), server_default="day", nullable=False),
        sa.Column("frequency_value", sa.Integer(), server_default="1", nullable=False),
        sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    """Drop the tracker tables."""
    op.drop_table("sync_settings")
    op.drop_index("ix_submission_records_submitted_at", table_name="submission_records")
    op.drop_index("ix_submission_records_student_id", table_name="submission_records")
    op.drop_table("submission_records")
    op.drop_index("ix_contest_results_student_id", table_name="contest_results")
    op.drop_table("contest_results")
    op.drop_table("students")
