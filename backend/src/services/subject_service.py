"""Service layer for subject CRUD operations."""
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from models.course import Course
from models.subject import Subject
from schemas.subject import SubjectCreate, SubjectUpdate
from services.base_resource_service import BaseResourceService
from services.exceptions import NotFoundError

logger = logging.getLogger(__name__)


async def require_program(db: AsyncSession, program_id: UUID) -> Course:
    """
    Load the program (course) a subject refers to.

    Raises:
        NotFoundError: If no such course exists.
    """
    program = await db.get(Course, program_id)
    if program is None:
        raise NotFoundError("Program ID not found")
    return program


class SubjectService(BaseResourceService[Subject]):
    """Subjects within a program. Codes are unique."""

    model = Subject
    entity_name = "Subject"
    duplicate_message = "Subject with this name or code already exists."

    async def create(self, db: AsyncSession, data: SubjectCreate) -> Subject:
        """
        Create a subject.

        Raises:
            NotFoundError: If the program does not exist.
            DuplicateError: If the code is taken.
        """
        await require_program(db, data.program_id)
        subject = Subject(
            name=data.name,
            code=data.code,
            description=data.description,
            program_id=data.program_id,
            type=data.type.value,
            credits=data.credits,
        )
        db.add(subject)
        await self._flush(db)
        logger.info("subject_created", extra={"subject_id": str(subject.id)})
        return await self._reload(db, subject.id)

    async def update(self, db: AsyncSession, subject_id: UUID, data: SubjectUpdate) -> Subject:
        """
        Update the provided fields of a subject.

        Raises:
            NotFoundError: If the subject or the new program does not exist.
            DuplicateError: If the new code is taken.
        """
        subject = await self.require(db, subject_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if "program_id" in update_data:
            await require_program(db, update_data["program_id"])
        if "type" in update_data:
            update_data["type"] = update_data["type"].value

        for field, value in update_data.items():
            setattr(subject, field, value)
        await self._flush(db)
        return await self._reload(db, subject.id)


subject_service = SubjectService()
