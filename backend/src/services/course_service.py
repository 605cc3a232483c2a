"""Service layer for course (program) CRUD operations."""
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from models.course import Course
from models.user import Role, User
from schemas.cached_user import CachedUser
from schemas.course import CourseCreate, CourseUpdate
from services.base_resource_service import BaseResourceService
from services.exceptions import ValidationError

logger = logging.getLogger(__name__)


class CourseService(BaseResourceService[Course]):
    """Courses (programs). Names are unique."""

    model = Course
    entity_name = "Course"
    duplicate_message = "A course with this name already exists."

    async def _check_coordinator(self, db: AsyncSession, coordinator_id: UUID) -> None:
        if await db.get(User, coordinator_id) is None:
            raise ValidationError(f"User with ID {coordinator_id} does not exist")

    async def create(
        self,
        db: AsyncSession,
        data: CourseCreate,
        created_by: CachedUser,
    ) -> Course:
        """
        Create a course.

        The coordinator defaults to the creating user when they are an admin.

        Raises:
            ValidationError: If the given coordinator does not exist.
            DuplicateError: If the name is taken.
        """
        coordinator_id = data.coordinator_id
        if coordinator_id is not None:
            await self._check_coordinator(db, coordinator_id)
        elif created_by.role == Role.ADMIN:
            coordinator_id = created_by.id

        course = Course(
            name=data.name,
            description=data.description,
            duration=data.duration,
            coordinator_id=coordinator_id,
        )
        db.add(course)
        await self._flush(db)
        logger.info("course_created", extra={"course_id": str(course.id)})
        return await self._reload(db, course.id)

    async def update(self, db: AsyncSession, course_id: UUID, data: CourseUpdate) -> Course:
        """
        Update the provided fields of a course.

        Raises:
            NotFoundError: If the course does not exist.
            ValidationError: If the given coordinator does not exist.
            DuplicateError: If the new name is taken.
        """
        course = await self.require(db, course_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if "coordinator_id" in update_data:
            await self._check_coordinator(db, update_data["coordinator_id"])

        for field, value in update_data.items():
            setattr(course, field, value)
        await self._flush(db)
        return await self._reload(db, course.id)


course_service = CourseService()
