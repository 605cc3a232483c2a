"""Fixtures for client tests: a mocked API at a fixed base URL."""
from collections.abc import AsyncGenerator, Iterator
from typing import Any

import pytest
import respx

from client.api_client import CampusApiClient

BASE_URL = "http://api.campus.test"

USER = {
    "id": "0190a5f2-0000-7000-8000-000000000001",
    "campus_id": "AB12CD34",
    "name": "Ada Lovelace",
    "email": "ada@campus.test",
    "role": "teacher",
}


def session_body(token: str = "access-1", **overrides: Any) -> dict[str, Any]:
    """Body of a register/login/refresh response."""
    body = {"message": "Login successful", "user": USER, "access_token": token}
    body.update(overrides)
    return body


@pytest.fixture
def mock_api() -> Iterator[respx.MockRouter]:
    """Routes registered on this router answer requests to BASE_URL."""
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as router:
        yield router


@pytest.fixture
async def api_client(mock_api: respx.MockRouter) -> AsyncGenerator[CampusApiClient]:  # noqa: ARG001
    """Client pointed at the mocked API."""
    async with CampusApiClient(base_url=BASE_URL) as client:
        yield client
