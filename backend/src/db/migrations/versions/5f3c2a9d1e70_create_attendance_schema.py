"""
Create users, catalog, class offering and attendance tables.

Revision ID: 5f3c2a9d1e70
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5f3c2a9d1e70"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "campus_id",
            sa.String(length=16),
            nullable=False,
            comment="Year prefix + 4 random digits, e.g. '20251234'",
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column(
            "refresh_token_hash",
            sa.String(length=64),
            nullable=True,
            comment="SHA-256 hash of the current refresh token",
        ),
        sa.Column("refresh_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_campus_id"), "users", ["campus_id"], unique=True)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(
        op.f("ix_users_refresh_token_hash"), "users", ["refresh_token_hash"], unique=True,
    )

    op.create_table(
        "courses",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "duration",
            sa.String(length=100),
            nullable=False,
            comment="Free text, e.g. '4 Years' or '2 Semesters'",
        ),
        sa.Column("coordinator_id", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["coordinator_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_courses_name"), "courses", ["name"], unique=True)

    op.create_table(
        "subjects",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("program_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["program_id"], ["courses.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_subjects_code"), "subjects", ["code"], unique=True)
    op.create_index(op.f("ix_subjects_program_id"), "subjects", ["program_id"], unique=False)

    op.create_table(
        "classes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("subject_id", sa.Uuid(), nullable=False),
        sa.Column("program_id", sa.Uuid(), nullable=False),
        sa.Column("section_name", sa.String(length=100), nullable=False),
        sa.Column("primary_teacher_id", sa.Uuid(), nullable=False),
        sa.Column("schedule", sa.JSON(), nullable=False),
        sa.Column(
            "academic_year",
            sa.String(length=20),
            nullable=False,
            comment="e.g. '2024-2025'",
        ),
        sa.Column("semester", sa.String(length=20), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["program_id"], ["courses.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["primary_teacher_id"], ["users.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "subject_id",
            "program_id",
            "section_name",
            "academic_year",
            "semester",
            name="uq_classes_offering",
        ),
    )
    op.create_index(op.f("ix_classes_subject_id"), "classes", ["subject_id"], unique=False)
    op.create_index(op.f("ix_classes_program_id"), "classes", ["program_id"], unique=False)
    op.create_index(
        op.f("ix_classes_primary_teacher_id"), "classes", ["primary_teacher_id"], unique=False,
    )

    op.create_table(
        "class_students",
        sa.Column("class_id", sa.Uuid(), nullable=False),
        sa.Column("student_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(["class_id"], ["classes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["student_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("class_id", "student_id"),
    )
    op.create_index(
        op.f("ix_class_students_student_id"), "class_students", ["student_id"], unique=False,
    )

    op.create_table(
        "attendance",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("class_id", sa.Uuid(), nullable=False),
        sa.Column("student_id", sa.Uuid(), nullable=False),
        sa.Column("marked_by_id", sa.Uuid(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("slot_time", sa.String(length=20), nullable=False, server_default=""),
        *_timestamps(),
        sa.ForeignKeyConstraint(["class_id"], ["classes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["student_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["marked_by_id"], ["users.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "class_id",
            "student_id",
            "date",
            "slot_time",
            name="uq_attendance_class_student_date_slot",
        ),
    )
    op.create_index(op.f("ix_attendance_class_id"), "attendance", ["class_id"], unique=False)
    op.create_index(op.f("ix_attendance_student_id"), "attendance", ["student_id"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_attendance_student_id"), table_name="attendance")
    op.drop_index(op.f("ix_attendance_class_id"), table_name="attendance")
    op.drop_table("attendance")
    op.drop_index(op.f("ix_class_students_student_id"), table_name="class_students")
    op.drop_table("class_students")
    op.drop_index(op.f("ix_classes_primary_teacher_id"), table_name="classes")
    op.drop_index(op.f("ix_classes_program_id"), table_name="classes")
    op.drop_index(op.f("ix_classes_subject_id"), table_name="classes")
    op.drop_table("classes")
    op.drop_index(op.f("ix_subjects_program_id"), table_name="subjects")
    op.drop_index(op.f("ix_subjects_code"), table_name="subjects")
    op.drop_table("subjects")
    op.drop_index(op.f("ix_courses_name"), table_name="courses")
    op.drop_table("courses")
    op.drop_index(op.f("ix_users_refresh_token_hash"), table_name="users")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_index(op.f("ix_users_campus_id"), table_name="users")
    op.drop_table("users")
