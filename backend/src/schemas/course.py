"""Pydantic schemas for course (program) endpoints."""
from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, StringConstraints

from schemas.auth import UserPublic
from schemas.validators import RequiredText

Description = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CourseCreate(BaseModel):
    """Schema for creating a course. The coordinator defaults to the creating admin."""

    name: RequiredText
    description: Description
    duration: RequiredText
    coordinator_id: UUID | None = None


class CourseUpdate(BaseModel):
    """Schema for updating a course. Omitted fields are left unchanged."""

    name: RequiredText | None = None
    description: Description | None = None
    duration: RequiredText | None = None
    coordinator_id: UUID | None = None


class CourseSummary(BaseModel):
    """Course fields embedded in subjects and class offerings."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    duration: str


class CourseResponse(BaseModel):
    """Schema for course responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str
    duration: str
    coordinator_id: UUID | None
    coordinator: UserPublic | None = None
    created_at: datetime
    updated_at: datetime
