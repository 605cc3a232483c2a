"""Class offering model - one section of a subject in a given term."""
from datetime import date
from enum import StrEnum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Column,
    Date,
    ForeignKey,
    String,
    Table,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.course import Course
    from models.subject import Subject
    from models.user import User


class Semester(StrEnum):
    """Academic term a class offering runs in."""

    FALL = "Fall"
    SPRING = "Spring"
    SUMMER = "Summer"
    ODD = "Odd"
    EVEN = "Even"
    YEARLY = "Yearly"


# Junction table for enrolled students
class_students = Table(
    "class_students",
    Base.metadata,
    Column(
        "class_id",
        Uuid,
        ForeignKey("classes.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "student_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)


class ClassOffering(Base, UUIDv7Mixin, TimestampMixin):
    """
    A concrete section of a subject, e.g. 'JP Theory - Group 2', for one term.

    The schedule is stored as a JSON list of slots:
    {"day_of_week", "start_time", "end_time", "room", "assigned_teacher_id"}.
    A slot's assigned teacher overrides the primary teacher for that slot.
    """

    __tablename__ = "classes"
    __table_args__ = (
        UniqueConstraint(
            "subject_id",
            "program_id",
            "section_name",
            "academic_year",
            "semester",
            name="uq_classes_offering",
        ),
    )

    subject_id: Mapped[UUID] = mapped_column(
        ForeignKey("subjects.id", ondelete="CASCADE"),
        index=True,
    )
    program_id: Mapped[UUID] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"),
        index=True,
    )
    section_name: Mapped[str] = mapped_column(String(100))
    primary_teacher_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        index=True,
    )
    schedule: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    academic_year: Mapped[str] = mapped_column(
        String(20),
        comment="e.g. '2024-2025'",
    )
    semester: Mapped[str] = mapped_column(String(20))
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)

    subject: Mapped["Subject"] = relationship(lazy="selectin")
    program: Mapped["Course"] = relationship(lazy="selectin")
    primary_teacher: Mapped["User"] = relationship(lazy="selectin")
    students: Mapped[list["User"]] = relationship(
        secondary=class_students,
        lazy="selectin",
        order_by="User.name",
    )
