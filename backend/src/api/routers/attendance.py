"""Attendance endpoints for teachers and admins."""
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_async_session,
    get_current_user,
    moderate_rate_limit,
    require_staff,
    role_based_rate_limit,
)
from models.attendance import Attendance
from schemas.attendance import (
    AttendanceChangeResponse,
    AttendanceMarkRequest,
    AttendanceMarkResponse,
    AttendanceResponse,
    AttendanceUpdate,
)
from schemas.auth import MessageResponse
from schemas.cached_user import CachedUser
from services.attendance_service import attendance_service

router = APIRouter(prefix="/attendance", tags=["attendance"])

STAFF_READ = [Depends(require_staff)]
STAFF_MARK = [Depends(get_current_user), Depends(role_based_rate_limit), Depends(require_staff)]
STAFF_AMEND = [Depends(get_current_user), Depends(moderate_rate_limit), Depends(require_staff)]


@router.get("", response_model=list[AttendanceResponse], dependencies=STAFF_READ)
async def list_attendance(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
) -> list[Attendance]:
    """List attendance records, filtered by any record column given as a query parameter."""
    return await attendance_service.find(db, request.query_params)


@router.get(
    "/class/{class_id}",
    response_model=list[AttendanceResponse],
    dependencies=STAFF_READ,
)
async def get_class_attendance(
    class_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> list[Attendance]:
    """All records for a class. Returns 404 if the class does not exist."""
    return await attendance_service.by_class(db, class_id)


@router.get(
    "/student/{student_id}",
    response_model=list[AttendanceResponse],
    dependencies=STAFF_READ,
)
async def get_student_attendance(
    student_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> list[Attendance]:
    """All records for a student. Returns 404 if there are none."""
    return await attendance_service.by_student(db, student_id)


@router.get(
    "/student/{student_id}/class/{class_id}",
    response_model=list[AttendanceResponse],
    dependencies=STAFF_READ,
)
async def get_student_class_attendance(
    student_id: UUID,
    class_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> list[Attendance]:
    """A student's records in one class. Returns 404 if there are none."""
    return await attendance_service.by_student_and_class(db, student_id, class_id)


async def _mark(
    class_id: UUID | None,
    data: AttendanceMarkRequest,
    current_user: CachedUser,
    db: AsyncSession,
) -> AttendanceMarkResponse:
    records = await attendance_service.mark(db, class_id, data, current_user)
    return AttendanceMarkResponse(
        message="Attendance marked successfully",
        attendance=[AttendanceResponse.model_validate(record) for record in records],
    )


@router.post(
    "",
    response_model=AttendanceMarkResponse,
    status_code=201,
    dependencies=STAFF_MARK,
)
async def mark_attendance(
    data: AttendanceMarkRequest,
    current_user: CachedUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_session),
) -> AttendanceMarkResponse:
    """
    Mark attendance for the class named in the body.

    Returns 409 if any student already has a record for that date and slot;
    in that case nothing from the request is stored.
    """
    return await _mark(None, data, current_user, db)


@router.post(
    "/{class_id}",
    response_model=AttendanceMarkResponse,
    status_code=201,
    dependencies=STAFF_MARK,
)
async def mark_class_attendance(
    class_id: UUID,
    data: AttendanceMarkRequest,
    current_user: CachedUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_session),
) -> AttendanceMarkResponse:
    """Mark attendance for the class in the path."""
    return await _mark(class_id, data, current_user, db)


@router.put("/{record_id}", response_model=AttendanceChangeResponse, dependencies=STAFF_AMEND)
async def update_attendance(
    record_id: UUID,
    data: AttendanceUpdate,
    db: AsyncSession = Depends(get_async_session),
) -> AttendanceChangeResponse:
    """Change the status of a record."""
    record = await attendance_service.update_status(db, record_id, data.status)
    return AttendanceChangeResponse(
        message="Attendance updated successfully",
        attendance=AttendanceResponse.model_validate(record),
    )


@router.delete("/{record_id}", response_model=MessageResponse, dependencies=STAFF_AMEND)
async def delete_attendance(
    record_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> MessageResponse:
    """Delete a record."""
    await attendance_service.delete(db, record_id)
    return MessageResponse(message="Attendance record deleted successfully")
