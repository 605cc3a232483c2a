"""Pydantic schemas for subject endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from models.subject import SubjectType
from schemas.course import CourseSummary
from schemas.validators import RequiredText


class SubjectCreate(BaseModel):
    """Schema for creating a subject."""

    name: RequiredText
    code: RequiredText
    description: str | None = None
    program_id: UUID
    type: SubjectType = SubjectType.THEORY
    credits: int | None = Field(default=None, ge=0)


class SubjectUpdate(BaseModel):
    """Schema for updating a subject. Omitted fields are left unchanged."""

    name: RequiredText | None = None
    code: RequiredText | None = None
    description: str | None = None
    program_id: UUID | None = None
    type: SubjectType | None = None
    credits: int | None = Field(default=None, ge=0)


class SubjectSummary(BaseModel):
    """Subject fields embedded in class offerings."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    code: str
    type: str


class SubjectResponse(BaseModel):
    """Schema for subject responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    code: str
    description: str | None
    program_id: UUID
    program: CourseSummary
    type: str
    credits: int | None
    created_at: datetime
    updated_at: datetime
