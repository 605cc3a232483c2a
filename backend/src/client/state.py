"""
Client-side state stores mirroring the API resources.

Each store owns the state a UI needs for one resource: the fetched items, the
currently selected item, a request status, and the last error message. Actions
call the API client and update state; failures are recorded on the store
rather than raised, so a view can render them.
"""
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Literal, TypeVar

from client.api_client import CampusApiClient
from client.errors import ApiError, RefreshInFlightError

Status = Literal["idle", "loading", "succeeded", "failed"]

R = TypeVar("R")

Item = dict[str, Any]


def _upsert(items: list[Item], item: Item) -> None:
    """Replace the item with the same id, or append it."""
    for index, existing in enumerate(items):
        if existing.get("id") == item.get("id"):
            items[index] = item
            return
    items.append(item)


@dataclass
class ResourceStore:
    """State for one resource collection (courses, subjects, classes, attendance)."""

    client: CampusApiClient
    resource: str
    items: list[Item] = field(default_factory=list)
    selected: Item | None = None
    status: Status = "idle"
    error: str | None = None

    async def _run(self, call: Callable[[], Awaitable[R]], failure_message: str) -> R | None:
        """Run one action: loading -> succeeded, or failed with the error message kept."""
        self.status = "loading"
        self.error = None
        try:
            result = await call()
        except ApiError as e:
            self.status = "failed"
            self.error = e.message or failure_message
            return None
        self.status = "succeeded"
        return result

    def reset(self) -> None:
        """Return to the initial state."""
        self.items = []
        self.selected = None
        self.status = "idle"
        self.error = None

    async def fetch_all(self, **filters: Any) -> list[Item] | None:
        """Load the collection, replacing the current items."""
        items = await self._run(
            lambda: self.client.list_items(self.resource, **filters),
            f"Failed to fetch {self.resource}",
        )
        if items is not None:
            self.items = items
        return items

    async def fetch_one(self, item_id: str) -> Item | None:
        """Load one item into ``selected``."""
        item = await self._run(
            lambda: self.client.get_item(self.resource, item_id),
            f"Failed to fetch {self.resource}",
        )
        if item is not None:
            self.selected = item
        return item

    async def create(self, data: dict[str, Any]) -> Item | None:
        """Create an item and append it."""
        item = await self._run(
            lambda: self.client.create_item(self.resource, data),
            f"Failed to create {self.resource}",
        )
        if item is not None:
            self.items.append(item)
        return item

    async def update(self, item_id: str, data: dict[str, Any]) -> Item | None:
        """Update an item and replace it in place (also in ``selected``)."""
        item = await self._run(
            lambda: self.client.update_item(self.resource, item_id, data),
            f"Failed to update {self.resource}",
        )
        if item is not None:
            self._replace(item)
        return item

    async def delete(self, item_id: str) -> bool:
        """Delete an item and drop it from state."""
        await self._run(
            lambda: self.client.delete_item(self.resource, item_id),
            f"Failed to delete {self.resource}",
        )
        if self.status != "succeeded":
            return False
        self.items = [item for item in self.items if item.get("id") != item_id]
        if self.selected is not None and self.selected.get("id") == item_id:
            self.selected = None
        return True

    def _replace(self, item: Item) -> None:
        _upsert(self.items, item)
        if self.selected is not None and self.selected.get("id") == item.get("id"):
            self.selected = item


class ClassStore(ResourceStore):
    """Class offerings, plus enrollment actions."""

    def __init__(self, client: CampusApiClient) -> None:
        super().__init__(client=client, resource="classes")

    async def enroll(self, class_id: str, student_ids: list[str]) -> Item | None:
        """Enroll students and refresh the stored class."""
        data = await self._run(
            lambda: self.client.enroll_students(class_id, student_ids),
            "Failed to enroll students",
        )
        if data is None:
            return None
        self._replace(data["class"])
        return data["class"]

    async def unenroll(self, class_id: str, student_ids: list[str]) -> Item | None:
        """Unenroll students and refresh the stored class."""
        data = await self._run(
            lambda: self.client.unenroll_students(class_id, student_ids),
            "Failed to unenroll students",
        )
        if data is None:
            return None
        self._replace(data["class"])
        return data["class"]


class AttendanceStore(ResourceStore):
    """Attendance records, loaded per class or per student."""

    def __init__(self, client: CampusApiClient) -> None:
        super().__init__(client=client, resource="attendance")

    async def fetch_by_class(self, class_id: str) -> list[Item] | None:
        """Replace records with a class's records."""
        records = await self._run(
            lambda: self.client.attendance_by_class(class_id),
            "Failed to fetch attendance",
        )
        if records is not None:
            self.items = records
        return records

    async def fetch_by_student(self, student_id: str) -> list[Item] | None:
        """Replace records with a student's records."""
        records = await self._run(
            lambda: self.client.attendance_by_student(student_id),
            "Failed to fetch student attendance",
        )
        if records is not None:
            self.items = records
        return records

    async def mark(self, data: dict[str, Any], class_id: str | None = None) -> list[Item] | None:
        """Mark attendance; new records are merged into state by id."""
        result = await self._run(
            lambda: self.client.mark_attendance(data, class_id=class_id),
            "Failed to mark attendance",
        )
        if result is None:
            return None
        for record in result["attendance"]:
            _upsert(self.items, record)
        return result["attendance"]

    async def update_status(self, record_id: str, status: str) -> Item | None:
        """Change one record's status and merge it into state."""
        result = await self._run(
            lambda: self.client.update_attendance(record_id, status),
            "Failed to update attendance",
        )
        if result is None:
            return None
        self._replace(result["attendance"])
        return result["attendance"]


@dataclass
class AuthStore:
    """Who is logged in, plus request state for auth actions."""

    client: CampusApiClient
    user: Item | None = None
    token: str | None = None
    loading: bool = False
    error: str | None = None

    @property
    def is_authenticated(self) -> bool:
        """True when an access token is held."""
        return bool(self.token)

    async def _authenticate(
        self,
        call: Callable[[], Awaitable[dict[str, Any]]],
        failure_message: str,
    ) -> Item | None:
        self.loading = True
        self.error = None
        try:
            data = await call()
        except ApiError as e:
            self.loading = False
            self.error = e.message or failure_message
            return None
        self.loading = False
        self.user = data["user"]
        self.token = data["access_token"]
        return self.user

    async def login(self, email: str, password: str) -> Item | None:
        """Log in; on failure ``error`` holds the server message."""
        return await self._authenticate(
            lambda: self.client.login(email, password), "Login failed",
        )

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: str | None = None,
    ) -> Item | None:
        """Register; on failure ``error`` holds the server message."""
        return await self._authenticate(
            lambda: self.client.register(name, email, password, role), "Registration failed",
        )

    async def refresh(self) -> Item | None:
        """
        Rotate the session.

        Skipped (returns None, no request sent) while another auth action is
        loading. A rejected refresh clears the session.
        """
        if self.loading or self.client.refresh_in_flight:
            return None
        self.loading = True
        self.error = None
        try:
            data = await self.client.refresh()
        except RefreshInFlightError:
            self.loading = False
            return None
        except ApiError:
            self.loading = False
            self.user = None
            self.token = None
            self.error = "Token refresh failed"
            return None
        self.loading = False
        self.user = data["user"]
        self.token = data["access_token"]
        return self.user

    async def logout(self) -> None:
        """Log out and clear the session (even if the server call fails)."""
        try:
            await self.client.logout()
        except ApiError:
            self.error = "Logout failed"
        finally:
            self.user = None
            self.token = None
            self.loading = False
