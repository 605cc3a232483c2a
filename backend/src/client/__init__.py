"""Python client and state stores for the Campus Attendance API."""
from client.api_client import CampusApiClient
from client.errors import ApiError, RefreshInFlightError
from client.state import AttendanceStore, AuthStore, ClassStore, ResourceStore

__all__ = [
    "ApiError",
    "AttendanceStore",
    "AuthStore",
    "CampusApiClient",
    "ClassStore",
    "RefreshInFlightError",
    "ResourceStore",
]
