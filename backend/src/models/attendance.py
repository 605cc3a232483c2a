"""Attendance record model."""
import datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.class_offering import ClassOffering
    from models.user import User


class AttendanceStatus(StrEnum):
    """Status recorded for a student in one session."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


class Attendance(Base, UUIDv7Mixin, TimestampMixin):
    """
    One student's attendance for one class on one date (and optional slot).

    slot_time is '' rather than NULL for whole-day records so the unique
    constraint treats them as equal (NULLs never collide in SQL).
    """

    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint(
            "class_id",
            "student_id",
            "date",
            "slot_time",
            name="uq_attendance_class_student_date_slot",
        ),
    )

    class_id: Mapped[UUID] = mapped_column(
        ForeignKey("classes.id", ondelete="CASCADE"),
        index=True,
    )
    student_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    marked_by_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"))
    date: Mapped[datetime.date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), default=AttendanceStatus.PRESENT.value)
    slot_time: Mapped[str] = mapped_column(String(20), default="")

    class_offering: Mapped["ClassOffering"] = relationship(lazy="selectin")
    student: Mapped["User"] = relationship(foreign_keys=[student_id], lazy="selectin")
