"""Shared fixtures for API tests."""
from typing import Any

import pytest
from httpx import AsyncClient

from models.user import User

# Constant for non-existent entity ID
FAKE_UUID = "00000000-0000-0000-0000-000000000000"


def course_payload(**overrides: Any) -> dict[str, Any]:
    """Valid course body."""
    payload = {
        "name": "BE CSE",
        "description": "Bachelor of Engineering in Computer Science",
        "duration": "4 Years",
    }
    payload.update(overrides)
    return payload


def subject_payload(program_id: str, **overrides: Any) -> dict[str, Any]:
    """Valid subject body for a program."""
    payload = {
        "name": "Operating Systems",
        "code": "CS301",
        "program_id": program_id,
        "type": "Theory",
        "credits": 4,
    }
    payload.update(overrides)
    return payload


def class_payload(
    subject_id: str,
    program_id: str,
    teacher_id: str,
    **overrides: Any,
) -> dict[str, Any]:
    """Valid class offering body."""
    payload = {
        "subject_id": subject_id,
        "program_id": program_id,
        "section_name": "Group 1",
        "primary_teacher_id": teacher_id,
        "academic_year": "2024-2025",
        "semester": "Fall",
        "start_date": "2024-08-01",
        "end_date": "2024-12-15",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
async def course(client: AsyncClient, admin_headers: dict[str, str]) -> dict[str, Any]:
    """A course created through the API."""
    response = await client.post("/courses", json=course_payload(), headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
async def subject(
    client: AsyncClient,
    admin_headers: dict[str, str],
    course: dict[str, Any],
) -> dict[str, Any]:
    """A subject in the course, created through the API."""
    response = await client.post(
        "/subjects", json=subject_payload(course["id"]), headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
async def class_offering(
    client: AsyncClient,
    admin_headers: dict[str, str],
    course: dict[str, Any],
    subject: dict[str, Any],
    teacher: User,
    student: User,
) -> dict[str, Any]:
    """A class taught by the teacher with the student enrolled."""
    response = await client.post(
        "/classes",
        json=class_payload(
            subject["id"], course["id"], str(teacher.id), students=[str(student.id)],
        ),
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()
