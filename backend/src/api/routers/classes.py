"""Class offering endpoints, including enrollment."""
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
from models.class_offering import ClassOffering
from schemas.auth import MessageResponse
from schemas.class_offering import (
    ClassCreate,
    ClassResponse,
    ClassUpdate,
    EnrollmentRequest,
    EnrollmentResponse,
)
from services.class_service import class_service

router = APIRouter(prefix="/classes", tags=["classes"])

ADMIN_WRITE = [Depends(get_current_user), Depends(moderate_rate_limit), Depends(require_admin)]


@router.get(
    "",
    response_model=list[ClassResponse],
    dependencies=[Depends(role_based_rate_limit)],
)
async def list_classes(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
) -> list[ClassOffering]:
    """
    List class offerings.

    Any query parameter naming a class column filters by exact match,
    e.g. `?semester=Fall&academic_year=2024-2025`.
    """
    return await class_service.find(db, request.query_params)


@router.get(
    "/{class_id}",
    response_model=ClassResponse,
    dependencies=[Depends(role_based_rate_limit)],
)
async def get_class(
    class_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> ClassOffering:
    """Get a class offering by ID."""
    return await class_service.require(db, class_id)


@router.post("", response_model=ClassResponse, status_code=201, dependencies=ADMIN_WRITE)
async def create_class(
    data: ClassCreate,
    db: AsyncSession = Depends(get_async_session),
) -> ClassOffering:
    """
    Create a class offering (admin only).

    The primary teacher and slot teachers must be teachers, and every listed
    student must be a student (400 otherwise). Returns 409 if the same
    subject/program/section/term offering exists.
    """
    return await class_service.create(db, data)


@router.put("/{class_id}", response_model=ClassResponse, dependencies=ADMIN_WRITE)
async def update_class(
    class_id: UUID,
    data: ClassUpdate,
    db: AsyncSession = Depends(get_async_session),
) -> ClassOffering:
    """Update a class offering (admin only). Only provided fields change."""
    return await class_service.update(db, class_id, data)


@router.delete("/{class_id}", response_model=MessageResponse, dependencies=ADMIN_WRITE)
async def delete_class(
    class_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> MessageResponse:
    """Delete a class offering (admin only)."""
    await class_service.delete(db, class_id)
    return MessageResponse(message="Class deleted successfully")


@router.put("/{class_id}/enroll", response_model=EnrollmentResponse, dependencies=ADMIN_WRITE)
async def enroll_students(
    class_id: UUID,
    data: EnrollmentRequest,
    db: AsyncSession = Depends(get_async_session),
) -> EnrollmentResponse:
    """Enroll students (admin only). Already-enrolled ids are skipped."""
    class_offering = await class_service.enroll(db, class_id, data.students)
    return EnrollmentResponse(
        message="Students enrolled",
        class_=ClassResponse.model_validate(class_offering),
    )


@router.put("/{class_id}/unenroll", response_model=EnrollmentResponse, dependencies=ADMIN_WRITE)
async def unenroll_students(
    class_id: UUID,
    data: EnrollmentRequest,
    db: AsyncSession = Depends(get_async_session),
) -> EnrollmentResponse:
    """Remove students from a class (admin only)."""
    class_offering = await class_service.unenroll(db, class_id, data.students)
    return EnrollmentResponse(
        message="Students unenrolled",
        class_=ClassResponse.model_validate(class_offering),
    )
