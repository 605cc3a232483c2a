"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.class_offering import ClassOffering, Semester, class_students  # Before user (junction table)
from models.attendance import Attendance, AttendanceStatus
from models.course import Course
from models.subject import Subject, SubjectType
from models.user import Role, User

__all__ = [
    "Attendance",
    "AttendanceStatus",
    "Base",
    "ClassOffering",
    "Course",
    "Role",
    "Semester",
    "Subject",
    "SubjectType",
    "TimestampMixin",
    "UUIDv7Mixin",
    "User",
    "class_students",
]
