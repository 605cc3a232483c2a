"""Course (program) catalog endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_async_session,
    get_current_user,
    moderate_rate_limit,
    require_admin,
    role_based_rate_limit,
)
from models.course import Course
from schemas.auth import MessageResponse
from schemas.cached_user import CachedUser
from schemas.course import CourseCreate, CourseResponse, CourseUpdate
from services.course_service import course_service

router = APIRouter(prefix="/courses", tags=["courses"])

# Writes: authenticate, count against the moderate limiter, then check role
ADMIN_WRITE = [Depends(get_current_user), Depends(moderate_rate_limit), Depends(require_admin)]


@router.get(
    "",
    response_model=list[CourseResponse],
    dependencies=[Depends(role_based_rate_limit)],
)
async def list_courses(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
) -> list[Course]:
    """
    List courses.

    Any query parameter naming a course column filters by exact match,
    e.g. `?name=BE CSE`. Unknown parameters return 400.
    """
    return await course_service.find(db, request.query_params)


@router.get(
    "/{course_id}",
    response_model=CourseResponse,
    dependencies=[Depends(role_based_rate_limit)],
)
async def get_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> Course:
    """Get a course by ID."""
    return await course_service.require(db, course_id)


@router.post("", response_model=CourseResponse, status_code=201, dependencies=ADMIN_WRITE)
async def create_course(
    data: CourseCreate,
    current_user: CachedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_session),
) -> Course:
    """
    Create a course (admin only).

    The coordinator defaults to the creating admin. Returns 409 if the name is taken.
    """
    return await course_service.create(db, data, current_user)


@router.put("/{course_id}", response_model=CourseResponse, dependencies=ADMIN_WRITE)
async def update_course(
    course_id: UUID,
    data: CourseUpdate,
    db: AsyncSession = Depends(get_async_session),
) -> Course:
    """Update a course (admin only). Only provided fields change."""
    return await course_service.update(db, course_id, data)


@router.delete("/{course_id}", response_model=MessageResponse, dependencies=ADMIN_WRITE)
async def delete_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> MessageResponse:
    """Delete a course (admin only)."""
    await course_service.delete(db, course_id)
    return MessageResponse(message="Course removed successfully")
