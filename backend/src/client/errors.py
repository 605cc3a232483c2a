"""
API error parsing for the client layer.

Turns HTTP error responses into an ApiError with a semantic category, so
callers and state stores can react without inspecting status codes.
"""
from typing import Literal

import httpx

ErrorCategory = Literal[
    "auth",          # 401 - Missing, invalid or expired credentials
    "forbidden",     # 403 - Role not allowed or refresh token rejected
    "not_found",     # 404 - Resource not found
    "validation",    # 400/422 - Validation error
    "conflict",      # 409 - Duplicate of a unique field
    "rate_limited",  # 429 - Too many requests
    "internal",      # 5xx or unexpected errors
]

DEFAULT_MESSAGES: dict[ErrorCategory, str] = {
    "auth": "Invalid or expired token",
    "forbidden": "Access denied",
    "not_found": "Not found",
    "validation": "Validation error",
    "conflict": "Resource already exists",
    "rate_limited": "Too many requests, please try again later",
    "internal": "An unknown error occurred",
}


class ApiError(Exception):
    """An API call failed with an HTTP error status."""

    def __init__(self, category: ErrorCategory, status: int, message: str) -> None:
        self.category = category
        self.status = status
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"ApiError(category={self.category!r}, status={self.status}, message={self.message!r})"


class RefreshInFlightError(Exception):
    """A token refresh was requested while another one is still running."""


def _category_for(status: int) -> ErrorCategory:  # noqa: PLR0911
    if status == 401:
        return "auth"
    if status == 403:
        return "forbidden"
    if status == 404:
        return "not_found"
    if status == 409:
        return "conflict"
    if status in (400, 422):
        return "validation"
    if status == 429:
        return "rate_limited"
    return "internal"


def _safe_get_message(response: httpx.Response) -> str | None:
    """Extract the server's {"message": ...} if the body carries one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return None


def parse_http_error(response: httpx.Response) -> ApiError:
    """
    Parse an error response into an ApiError.

    The server's message is preferred; a category default is used when the body
    has none (e.g. proxies returning HTML).
    """
    category = _category_for(response.status_code)
    message = _safe_get_message(response) or DEFAULT_MESSAGES[category]
    return ApiError(category, response.status_code, message)
