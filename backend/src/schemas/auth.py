"""Pydantic schemas for authentication endpoints."""
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from models.user import Role
from schemas.validators import normalize_email, validate_password

TrimmedName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]


class RegisterRequest(BaseModel):
    """Schema for registering a new user."""

    name: TrimmedName
    email: str
    password: str
    role: Role = Field(
        default=Role.STUDENT,
        description="Defaults to student when omitted.",
    )

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        """Trim, lower-case and shape-check the email."""
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        """Reject empty or over-long passwords."""
        return validate_password(v)


class LoginRequest(BaseModel):
    """Schema for logging in with email and password."""

    email: str
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        """Trim, lower-case and shape-check the email."""
        return normalize_email(v)


class UserPublic(BaseModel):
    """Public user fields returned by auth endpoints."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    campus_id: str
    name: str
    email: str
    role: str


class AuthResponse(BaseModel):
    """
    Response for register, login and refresh.

    The refresh token is never part of the body; it travels in the
    http-only `jwt` cookie.
    """

    message: str
    user: UserPublic
    access_token: str


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str
