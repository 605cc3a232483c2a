"""Shared exceptions for service layer operations."""
from enum import Enum


class ErrorKind(Enum):
    """Category of a service failure, mapped to an HTTP status at the API boundary."""

    VALIDATION = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409

    @property
    def status_code(self) -> int:
        """HTTP status code for this kind."""
        return self.value


class ServiceError(Exception):
    """
    Base class for domain failures raised by services and auth dependencies.

    Carries an ErrorKind; the exception handler in api.main turns it into a
    JSON {"message": ...} response with the matching status code.
    """

    kind: ErrorKind = ErrorKind.VALIDATION
    default_message = "Validation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    """Raised for malformed or missing input, or references to invalid entities."""

    kind = ErrorKind.VALIDATION
    default_message = "Validation failed"


class UnauthorizedError(ServiceError):
    """Raised for bad credentials or a missing/invalid token."""

    kind = ErrorKind.UNAUTHORIZED
    default_message = "Unauthorized access"


class ForbiddenError(ServiceError):
    """Raised when the caller is authenticated but not permitted, or a refresh token is invalid."""

    kind = ErrorKind.FORBIDDEN
    default_message = "Forbidden access"


class NotFoundError(ServiceError):
    """Raised when a referenced entity does not exist."""

    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"


class DuplicateError(ServiceError):
    """Raised when a write would violate a uniqueness rule."""

    kind = ErrorKind.CONFLICT
    default_message = "Resource already exists"
