"""Service layer for class offerings and enrollment."""
import logging
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from models.class_offering import ClassOffering
from models.course import Course
from models.subject import Subject
from models.user import Role
from schemas.class_offering import ClassCreate, ClassUpdate, ScheduleSlot
from services import user_service
from services.base_resource_service import BaseResourceService
from services.exceptions import ValidationError

logger = logging.getLogger(__name__)


async def _require_subject(db: AsyncSession, subject_id: UUID) -> Subject:
    subject = await db.get(Subject, subject_id)
    if subject is None:
        raise ValidationError(f"Subject with ID {subject_id} does not exist")
    return subject


async def _require_program(db: AsyncSession, program_id: UUID) -> Course:
    program = await db.get(Course, program_id)
    if program is None:
        raise ValidationError(f"Program with ID {program_id} does not exist")
    return program


async def _validate_schedule(db: AsyncSession, schedule: Iterable[ScheduleSlot]) -> list[dict]:
    """Check every slot's assigned teacher is a teacher; return JSON-ready slots."""
    slots = list(schedule)
    await user_service.require_users_with_role(
        db,
        [slot.assigned_teacher_id for slot in slots if slot.assigned_teacher_id],
        [Role.TEACHER],
    )
    return [slot.model_dump(mode="json") for slot in slots]


class ClassService(BaseResourceService[ClassOffering]):
    """
    Class offerings: one section of a subject in a program for one term.

    Role rules: the primary teacher and every slot's assigned teacher must be
    teachers; every enrolled user must be a student. A failed check raises
    before anything is added to the session.
    """

    model = ClassOffering
    entity_name = "Class"
    duplicate_message = (
        "A class for this subject, program, section, academic year and semester already exists."
    )

    async def create(self, db: AsyncSession, data: ClassCreate) -> ClassOffering:
        """
        Create a class offering.

        Raises:
            ValidationError: If a referenced subject/program/user is missing or has the wrong role.
            DuplicateError: If the offering already exists.
        """
        await _require_subject(db, data.subject_id)
        await _require_program(db, data.program_id)
        await user_service.require_user_with_role(db, data.primary_teacher_id, [Role.TEACHER])
        students = await user_service.require_users_with_role(db, data.students, [Role.STUDENT])
        schedule = await _validate_schedule(db, data.schedule)

        class_offering = ClassOffering(
            subject_id=data.subject_id,
            program_id=data.program_id,
            section_name=data.section_name,
            primary_teacher_id=data.primary_teacher_id,
            academic_year=data.academic_year,
            semester=data.semester.value,
            start_date=data.start_date,
            end_date=data.end_date,
            schedule=schedule,
            students=students,
        )
        db.add(class_offering)
        await self._flush(db)
        logger.info("class_created", extra={"class_id": str(class_offering.id)})
        return await self._reload(db, class_offering.id)

    async def update(
        self,
        db: AsyncSession,
        class_id: UUID,
        data: ClassUpdate,
    ) -> ClassOffering:
        """
        Update the provided fields of a class offering.

        ``students`` and ``schedule`` replace the stored lists when given.

        Raises:
            NotFoundError: If the class does not exist.
            ValidationError: If a referenced entity is invalid or the dates are reversed.
            DuplicateError: If the change collides with another offering.
        """
        class_offering = await self.require(db, class_id)
        update_data = data.model_dump(
            exclude_unset=True, exclude_none=True, exclude={"students", "schedule"},
        )

        if "subject_id" in update_data:
            await _require_subject(db, update_data["subject_id"])
        if "program_id" in update_data:
            await _require_program(db, update_data["program_id"])
        if "primary_teacher_id" in update_data:
            await user_service.require_user_with_role(
                db, update_data["primary_teacher_id"], [Role.TEACHER],
            )
        students = None
        if data.students is not None:
            students = await user_service.require_users_with_role(
                db, data.students, [Role.STUDENT],
            )
        schedule = None
        if data.schedule is not None:
            schedule = await _validate_schedule(db, data.schedule)

        start_date = update_data.get("start_date", class_offering.start_date)
        end_date = update_data.get("end_date", class_offering.end_date)
        if end_date < start_date:
            raise ValidationError("end_date cannot be before start_date")
        if "semester" in update_data:
            update_data["semester"] = update_data["semester"].value

        for field, value in update_data.items():
            setattr(class_offering, field, value)
        if students is not None:
            class_offering.students = students
        if schedule is not None:
            class_offering.schedule = schedule

        await self._flush(db)
        return await self._reload(db, class_offering.id)

    async def enroll(
        self,
        db: AsyncSession,
        class_id: UUID,
        student_ids: Iterable[UUID],
    ) -> ClassOffering:
        """
        Add students to a class. Ids already enrolled are skipped.

        Raises:
            NotFoundError: If the class does not exist.
            ValidationError: If any id is not a student.
        """
        class_offering = await self.require(db, class_id)
        students = await user_service.require_users_with_role(db, student_ids, [Role.STUDENT])

        enrolled = {student.id for student in class_offering.students}
        new_students = [student for student in students if student.id not in enrolled]
        class_offering.students.extend(new_students)
        await self._flush(db)
        logger.info(
            "students_enrolled",
            extra={"class_id": str(class_id), "added": len(new_students)},
        )
        return await self._reload(db, class_offering.id)

    async def unenroll(
        self,
        db: AsyncSession,
        class_id: UUID,
        student_ids: Iterable[UUID],
    ) -> ClassOffering:
        """
        Remove students from a class. Ids not enrolled are ignored.

        Raises:
            NotFoundError: If the class does not exist.
        """
        class_offering = await self.require(db, class_id)
        removed = set(student_ids)
        class_offering.students = [
            student for student in class_offering.students if student.id not in removed
        ]
        await self._flush(db)
        return await self._reload(db, class_offering.id)


class_service = ClassService()
