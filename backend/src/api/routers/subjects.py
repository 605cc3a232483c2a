"""Subject catalog endpoints."""
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
from models.subject import Subject
from schemas.auth import MessageResponse
from schemas.subject import SubjectCreate, SubjectResponse, SubjectUpdate
from services.subject_service import subject_service

router = APIRouter(prefix="/subjects", tags=["subjects"])

ADMIN_WRITE = [Depends(get_current_user), Depends(moderate_rate_limit), Depends(require_admin)]


@router.get(
    "",
    response_model=list[SubjectResponse],
    dependencies=[Depends(role_based_rate_limit)],
)
async def list_subjects(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
) -> list[Subject]:
    """List subjects, filtered by any subject column given as a query parameter."""
    return await subject_service.find(db, request.query_params)


@router.get(
    "/{subject_id}",
    response_model=SubjectResponse,
    dependencies=[Depends(role_based_rate_limit)],
)
async def get_subject(
    subject_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> Subject:
    """Get a subject by ID."""
    return await subject_service.require(db, subject_id)


@router.post("", response_model=SubjectResponse, status_code=201, dependencies=ADMIN_WRITE)
async def create_subject(
    data: SubjectCreate,
    db: AsyncSession = Depends(get_async_session),
) -> Subject:
    """
    Create a subject (admin only).

    Returns 404 if the program does not exist, 409 if the code is taken.
    """
    return await subject_service.create(db, data)


@router.put("/{subject_id}", response_model=SubjectResponse, dependencies=ADMIN_WRITE)
async def update_subject(
    subject_id: UUID,
    data: SubjectUpdate,
    db: AsyncSession = Depends(get_async_session),
) -> Subject:
    """Update a subject (admin only). Only provided fields change."""
    return await subject_service.update(db, subject_id, data)


@router.delete("/{subject_id}", response_model=MessageResponse, dependencies=ADMIN_WRITE)
async def delete_subject(
    subject_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> MessageResponse:
    """Delete a subject (admin only)."""
    await subject_service.delete(db, subject_id)
    return MessageResponse(message="Subject removed")
