"""Async HTTP client for the Campus Attendance API."""
import os
from typing import Any

import httpx

from client.errors import RefreshInFlightError, parse_http_error

REFRESH_COOKIE = "jwt"


def get_api_base_url() -> str:
    """Get the API base URL from environment."""
    return os.getenv("CAMPUS_API_URL", "http://localhost:5000")


def get_default_timeout() -> float:
    """Get the default request timeout."""
    return float(os.getenv("CAMPUS_API_TIMEOUT", "30.0"))


class CampusApiClient:
    """
    Session-aware API client.

    The access token is held in memory and sent as a bearer header; the refresh
    token lives only in the client's cookie jar as the `jwt` cookie, exactly as
    a browser would keep it.

    Only one refresh may be in flight at a time. A second call made while the
    first is pending raises RefreshInFlightError before any request is sent.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url or get_api_base_url(),
            timeout=timeout if timeout is not None else get_default_timeout(),
            transport=transport,
        )
        self.access_token: str | None = None
        self.user: dict[str, Any] | None = None
        self._refresh_in_flight = False

    async def __aenter__(self) -> "CampusApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    @property
    def refresh_in_flight(self) -> bool:
        """True while a refresh request is pending."""
        return self._refresh_in_flight

    def _get_headers(self) -> dict[str, str]:
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body (None for empty bodies).

        Raises:
            ApiError: If the response status is 4xx/5xx.
        """
        response = await self._client.request(
            method,
            path,
            json=json,
            params=params,
            headers=self._get_headers(),
        )
        if response.is_error:
            raise parse_http_error(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _store_session(self, data: dict[str, Any]) -> dict[str, Any]:
        self.access_token = data["access_token"]
        self.user = data["user"]
        return data

    def _clear_session(self) -> None:
        self.access_token = None
        self.user = None
        self._client.cookies.delete(REFRESH_COOKIE)

    # --- Auth ---

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: str | None = None,
    ) -> dict[str, Any]:
        """Create an account; the returned session is kept on the client."""
        payload: dict[str, Any] = {"name": name, "email": email, "password": password}
        if role is not None:
            payload["role"] = role
        return self._store_session(await self._request("POST", "/auth/register", json=payload))

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Log in; the returned session is kept on the client."""
        data = await self._request(
            "POST", "/auth/login", json={"email": email, "password": password},
        )
        return self._store_session(data)

    async def refresh(self) -> dict[str, Any]:
        """
        Rotate the session using the refresh cookie.

        Raises:
            RefreshInFlightError: If another refresh has not finished yet.
            ApiError: If the server rejects the refresh; the session is cleared.
        """
        if self._refresh_in_flight:
            raise RefreshInFlightError("A token refresh is already in progress")
        self._refresh_in_flight = True
        try:
            data = await self._request("POST", "/auth/refresh")
        except Exception:
            self.access_token = None
            self.user = None
            raise
        finally:
            self._refresh_in_flight = False
        return self._store_session(data)

    async def logout(self) -> None:
        """End the session on the server and forget it locally."""
        try:
            await self._request("POST", "/auth/logout")
        finally:
            self._clear_session()

    # --- Generic resource CRUD (courses, subjects, classes, attendance) ---

    async def list_items(self, resource: str, **filters: Any) -> list[dict[str, Any]]:
        """List a resource, passing keyword arguments as column filters."""
        return await self._request("GET", f"/{resource}", params=filters or None)

    async def get_item(self, resource: str, resource_id: str) -> dict[str, Any]:
        """Get one item of a resource."""
        return await self._request("GET", f"/{resource}/{resource_id}")

    async def create_item(self, resource: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create an item of a resource."""
        return await self._request("POST", f"/{resource}", json=data)

    async def update_item(
        self,
        resource: str,
        resource_id: str,
        data: dict[str, Any],
    ) -> dict[str, Any]:
        """Update an item of a resource."""
        return await self._request("PUT", f"/{resource}/{resource_id}", json=data)

    async def delete_item(self, resource: str, resource_id: str) -> dict[str, Any]:
        """Delete an item of a resource."""
        return await self._request("DELETE", f"/{resource}/{resource_id}")

    # --- Classes ---

    async def enroll_students(self, class_id: str, student_ids: list[str]) -> dict[str, Any]:
        """Enroll students; returns {"message", "class"}."""
        return await self._request(
            "PUT", f"/classes/{class_id}/enroll", json={"students": student_ids},
        )

    async def unenroll_students(self, class_id: str, student_ids: list[str]) -> dict[str, Any]:
        """Remove students; returns {"message", "class"}."""
        return await self._request(
            "PUT", f"/classes/{class_id}/unenroll", json={"students": student_ids},
        )

    # --- Attendance ---

    async def mark_attendance(
        self,
        data: dict[str, Any],
        class_id: str | None = None,
    ) -> dict[str, Any]:
        """Mark attendance; returns {"message", "attendance": [...]}."""
        path = f"/attendance/{class_id}" if class_id else "/attendance"
        return await self._request("POST", path, json=data)

    async def attendance_by_class(self, class_id: str) -> list[dict[str, Any]]:
        """All records for a class."""
        return await self._request("GET", f"/attendance/class/{class_id}")

    async def attendance_by_student(self, student_id: str) -> list[dict[str, Any]]:
        """All records for a student."""
        return await self._request("GET", f"/attendance/student/{student_id}")

    async def attendance_by_student_and_class(
        self,
        student_id: str,
        class_id: str,
    ) -> list[dict[str, Any]]:
        """A student's records in one class."""
        return await self._request(
            "GET", f"/attendance/student/{student_id}/class/{class_id}",
        )

    async def update_attendance(self, record_id: str, status: str) -> dict[str, Any]:
        """Change a record's status; returns {"message", "attendance"}."""
        return await self._request("PUT", f"/attendance/{record_id}", json={"status": status})
