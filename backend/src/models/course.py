"""Course (program) model."""
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.user import User


class Course(Base, UUIDv7Mixin, TimestampMixin):
    """A degree program, e.g. 'BE CSE'. Subjects and class offerings hang off it."""

    __tablename__ = "courses"

    name: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    description: Mapped[str] = mapped_column(Text)
    duration: Mapped[str] = mapped_column(
        String(100),
        comment="Free text, e.g. '4 Years' or '2 Semesters'",
    )
    coordinator_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    coordinator: Mapped["User | None"] = relationship(lazy="selectin")
