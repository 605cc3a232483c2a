"""User model for storing credentials and roles."""
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.class_offering import class_students

if TYPE_CHECKING:
    from models.class_offering import ClassOffering


class Role(StrEnum):
    """Roles a user can hold. Immutable after registration."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class User(Base, UUIDv7Mixin, TimestampMixin):
    """
    User model - identity and credential holder.

    The refresh token is stored hashed; the plaintext only exists in the
    response cookie at issuance time.
    """

    __tablename__ = "users"

    campus_id: Mapped[str] = mapped_column(
        String(16),
        unique=True,
        index=True,
        comment="Year prefix + 4 random digits, e.g. '20251234'",
    )
    name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20), default=Role.STUDENT.value)
    refresh_token_hash: Mapped[str | None] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=True,
        comment="SHA-256 hash of the current refresh token",
    )
    refresh_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Classes the user is enrolled in (maintained through class enrollment)
    assigned_classes: Mapped[list["ClassOffering"]] = relationship(
        secondary=class_students,
        viewonly=True,
    )
