"""Pydantic schemas for attendance endpoints."""
import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from models.attendance import AttendanceStatus
from schemas.auth import UserPublic
from schemas.class_offering import ClassSummary


class AttendanceEntry(BaseModel):
    """Status for one student within a marking request."""

    student_id: UUID
    status: AttendanceStatus = AttendanceStatus.PRESENT


class AttendanceMarkRequest(BaseModel):
    """
    Schema for marking attendance for a class session.

    class_id may come from the path instead (POST /attendance/{class_id}); the
    path value wins when both are given.
    """

    class_id: UUID | None = None
    date: datetime.date
    slot_time: str = Field(
        default="",
        max_length=20,
        description="Start time of the slot, e.g. '09:30'. Empty marks the whole day.",
    )
    records: list[AttendanceEntry] = Field(min_length=1)


class AttendanceUpdate(BaseModel):
    """Schema for amending an attendance record."""

    status: AttendanceStatus


class AttendanceResponse(BaseModel):
    """Schema for attendance record responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    class_id: UUID
    class_offering: ClassSummary
    student_id: UUID
    student: UserPublic
    marked_by_id: UUID
    date: datetime.date
    status: str
    slot_time: str
    created_at: datetime.datetime
    updated_at: datetime.datetime


class AttendanceMarkResponse(BaseModel):
    """Result of a marking request."""

    message: str
    attendance: list[AttendanceResponse]


class AttendanceChangeResponse(BaseModel):
    """Result of an update."""

    message: str
    attendance: AttendanceResponse
