"""Service layer for marking and querying attendance."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.attendance import Attendance, AttendanceStatus
from models.class_offering import ClassOffering
from models.user import Role
from schemas.attendance import AttendanceMarkRequest
from schemas.cached_user import CachedUser
from services import user_service
from services.base_resource_service import BaseResourceService
from services.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class AttendanceService(BaseResourceService[Attendance]):
    """
    Attendance records, unique per (class, student, date, slot time).

    A marking request is one batch: if any record in it collides with an
    existing one, the whole batch is rolled back.
    """

    model = Attendance
    entity_name = "Attendance record"
    duplicate_message = "Attendance already marked for this student, date and slot"

    async def _require_class(self, db: AsyncSession, class_id: UUID) -> ClassOffering:
        class_offering = await db.get(ClassOffering, class_id)
        if class_offering is None:
            raise NotFoundError("Class not found")
        return class_offering

    def _ordering(self) -> tuple:
        return (Attendance.date, Attendance.created_at, Attendance.id)

    async def _query(self, db: AsyncSession, **criteria: UUID) -> list[Attendance]:
        query = select(Attendance).filter_by(**criteria)
        result = await db.execute(query.order_by(*self._ordering()))
        return list(result.scalars().all())

    async def mark(
        self,
        db: AsyncSession,
        class_id: UUID | None,
        data: AttendanceMarkRequest,
        marked_by: CachedUser,
    ) -> list[Attendance]:
        """
        Insert one record per entry for a class session.

        Args:
            db: Database session.
            class_id: Class from the path; falls back to data.class_id.
            data: Date, optional slot time and per-student statuses.
            marked_by: The teacher or admin taking attendance.

        Raises:
            ValidationError: If no class id was given or an entry is not a student.
            NotFoundError: If the class does not exist.
            DuplicateError: If any entry is already recorded; nothing is persisted.
        """
        class_id = class_id or data.class_id
        if class_id is None:
            raise ValidationError("classId, date, and attendance records are required")

        await self._require_class(db, class_id)
        await user_service.require_users_with_role(
            db, [entry.student_id for entry in data.records], [Role.STUDENT],
        )

        records = [
            Attendance(
                class_id=class_id,
                student_id=entry.student_id,
                marked_by_id=marked_by.id,
                date=data.date,
                status=entry.status.value,
                slot_time=data.slot_time.strip(),
            )
            for entry in data.records
        ]
        db.add_all(records)
        await self._flush(db)
        logger.info(
            "attendance_marked",
            extra={
                "class_id": str(class_id),
                "count": len(records),
                "marked_by": str(marked_by.id),
            },
        )

        ids = [record.id for record in records]
        result = await db.execute(
            select(Attendance)
            .where(Attendance.id.in_(ids))
            .order_by(Attendance.id)
            .execution_options(populate_existing=True),
        )
        return list(result.scalars().all())

    async def by_class(self, db: AsyncSession, class_id: UUID) -> list[Attendance]:
        """
        All records for a class.

        Raises:
            NotFoundError: If the class does not exist.
        """
        await self._require_class(db, class_id)
        return await self._query(db, class_id=class_id)

    async def by_student(self, db: AsyncSession, student_id: UUID) -> list[Attendance]:
        """
        All records for a student.

        Raises:
            ValidationError: If the id is not a student.
            NotFoundError: If the student has no records.
        """
        await user_service.require_user_with_role(db, student_id, [Role.STUDENT])
        records = await self._query(db, student_id=student_id)
        if not records:
            raise NotFoundError("No attendance records found for this student")
        return records

    async def by_student_and_class(
        self,
        db: AsyncSession,
        student_id: UUID,
        class_id: UUID,
    ) -> list[Attendance]:
        """
        A student's records within one class.

        Raises:
            ValidationError: If the id is not a student.
            NotFoundError: If the class does not exist or there are no records.
        """
        await user_service.require_user_with_role(db, student_id, [Role.STUDENT])
        await self._require_class(db, class_id)
        records = await self._query(db, student_id=student_id, class_id=class_id)
        if not records:
            raise NotFoundError("No attendance records found for this student in this class")
        return records

    async def update_status(
        self,
        db: AsyncSession,
        record_id: UUID,
        status: AttendanceStatus,
    ) -> Attendance:
        """
        Change the status of a record.

        Raises:
            NotFoundError: If the record does not exist.
        """
        record = await self.require(db, record_id)
        record.status = status.value
        await self._flush(db)
        return await self._reload(db, record.id)


attendance_service = AttendanceService()
