"""Pydantic schemas for class offering endpoints."""
from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.class_offering import Semester
from schemas.auth import UserPublic
from schemas.course import CourseSummary
from schemas.subject import SubjectSummary
from schemas.validators import RequiredText

DayOfWeek = Literal[
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
]

# 24-hour clock, e.g. "09:30"
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class ScheduleSlot(BaseModel):
    """One weekly teaching slot. assigned_teacher_id overrides the primary teacher."""

    day_of_week: DayOfWeek
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    room: RequiredText
    assigned_teacher_id: UUID | None = None


class ClassCreate(BaseModel):
    """Schema for creating a class offering."""

    subject_id: UUID
    program_id: UUID
    section_name: RequiredText
    primary_teacher_id: UUID
    academic_year: RequiredText
    semester: Semester
    start_date: date
    end_date: date
    students: list[UUID] = Field(default_factory=list)
    schedule: list[ScheduleSlot] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_date_range(self) -> "ClassCreate":
        """End date may not precede start date."""
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class ClassUpdate(BaseModel):
    """Schema for updating a class offering. Omitted fields are left unchanged."""

    subject_id: UUID | None = None
    program_id: UUID | None = None
    section_name: RequiredText | None = None
    primary_teacher_id: UUID | None = None
    academic_year: RequiredText | None = None
    semester: Semester | None = None
    start_date: date | None = None
    end_date: date | None = None
    students: list[UUID] | None = None
    schedule: list[ScheduleSlot] | None = None


class EnrollmentRequest(BaseModel):
    """Student ids to enroll in or remove from a class."""

    students: list[UUID] = Field(min_length=1)


class ClassSummary(BaseModel):
    """Class fields embedded in attendance records."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    section_name: str
    subject_id: UUID


class ClassResponse(BaseModel):
    """Schema for class offering responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    subject_id: UUID
    subject: SubjectSummary
    program_id: UUID
    program: CourseSummary
    section_name: str
    primary_teacher_id: UUID
    primary_teacher: UserPublic
    students: list[UserPublic]
    schedule: list[ScheduleSlot]
    academic_year: str
    semester: str
    start_date: date
    end_date: date
    created_at: datetime
    updated_at: datetime


class EnrollmentResponse(BaseModel):
    """Result of an enroll/unenroll call."""

    message: str
    class_: ClassResponse = Field(serialization_alias="class")
