"""Subject model."""
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.course import Course


class SubjectType(StrEnum):
    """Kind of teaching a subject involves."""

    THEORY = "Theory"
    LAB = "Lab"
    TUTORIAL = "Tutorial"
    PROJECT = "Project"


class Subject(Base, UUIDv7Mixin, TimestampMixin):
    """A subject taught within a program, e.g. 'CS301 Operating Systems'."""

    __tablename__ = "subjects"

    name: Mapped[str] = mapped_column(String(255))
    code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    program_id: Mapped[UUID] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"),
        index=True,
    )
    type: Mapped[str] = mapped_column(String(20), default=SubjectType.THEORY.value)
    credits: Mapped[int | None] = mapped_column(Integer, nullable=True)

    program: Mapped["Course"] = relationship(lazy="selectin")
