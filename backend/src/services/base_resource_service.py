"""
Base service class for catalog and attendance CRUD operations.

Provides the list/get/delete logic shared by courses, subjects, class offerings
and attendance records. Entity-specific create/update rules live in the
subclasses.
"""
from abc import ABC
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import JSON, Column, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from models.base import Base
from services.exceptions import DuplicateError, NotFoundError, ValidationError

T = TypeVar("T", bound=Base)

# Columns never exposed as list filters
NON_FILTERABLE_COLUMNS = frozenset({"created_at", "updated_at"})


def coerce_filter_value(column: Column, raw: str) -> Any:
    """
    Convert a query-string value to the Python type of a column.

    Raises:
        ValueError: If the value cannot be parsed for the column type.
    """
    python_type = column.type.python_type
    if python_type is UUID:
        return UUID(raw)
    if python_type is date:
        return date.fromisoformat(raw)
    if python_type is datetime:
        return datetime.fromisoformat(raw)
    if python_type is int:
        return int(raw)
    return raw


def is_unique_violation(error: IntegrityError) -> bool:
    """True when an IntegrityError came from a unique constraint (PostgreSQL or SQLite)."""
    message = str(error.orig).lower()
    return "unique" in message or "duplicate key" in message


class BaseResourceService(ABC, Generic[T]):
    """
    Abstract base class for resource CRUD operations.

    Subclasses must define:
    - model: The SQLAlchemy model class
    - entity_name: Human-readable name for error messages (e.g., "Course")
    - duplicate_message: Message for a unique-constraint conflict
    """

    model: type[T]
    entity_name: str
    duplicate_message: str

    # --- Helper Methods ---

    def not_found(self) -> NotFoundError:
        """Build the standard not-found error for this entity."""
        return NotFoundError(f"{self.entity_name} not found")

    def _apply_filters(self, query: Select, filters: Mapping[str, str]) -> Select:
        """
        Add an equality predicate per query-string filter.

        Raises:
            ValidationError: If a key is not a filterable column or its value is malformed.
        """
        columns = self.model.__table__.columns
        for key, raw in filters.items():
            column = columns.get(key)
            if (
                column is None
                or key in NON_FILTERABLE_COLUMNS
                or isinstance(column.type, JSON)
            ):
                raise ValidationError(f"Unknown filter: {key}")
            try:
                value = coerce_filter_value(column, raw)
            except ValueError as e:
                raise ValidationError(f"Invalid value for filter '{key}'") from e
            query = query.where(column == value)
        return query

    async def _flush(self, db: AsyncSession) -> None:
        """
        Flush pending changes, turning unique violations into DuplicateError.

        Raises:
            DuplicateError: If the flush hit a unique constraint.
        """
        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            if is_unique_violation(e):
                raise DuplicateError(self.duplicate_message) from e
            raise

    def _ordering(self) -> tuple:
        """Default list ordering: oldest first."""
        return (self.model.created_at, self.model.id)

    async def _reload(self, db: AsyncSession, entity_id: UUID) -> T:
        """Re-select an entity so its eager relationships reflect the flushed state."""
        result = await db.execute(
            select(self.model)
            .where(self.model.id == entity_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one()

    # --- CRUD ---

    async def find(self, db: AsyncSession, filters: Mapping[str, str] | None = None) -> list[T]:
        """
        List entities, optionally filtered by exact column matches.

        Args:
            db: Database session.
            filters: Column name -> raw query-string value.

        Raises:
            ValidationError: If a filter key is unknown or a value malformed.
        """
        query = self._apply_filters(select(self.model), filters or {})
        result = await db.execute(query.order_by(*self._ordering()))
        return list(result.scalars().all())

    async def get(self, db: AsyncSession, entity_id: UUID) -> T | None:
        """Get an entity by ID, None if absent."""
        return await db.get(self.model, entity_id)

    async def require(self, db: AsyncSession, entity_id: UUID) -> T:
        """
        Get an entity by ID.

        Raises:
            NotFoundError: If the entity does not exist.
        """
        entity = await self.get(db, entity_id)
        if entity is None:
            raise self.not_found()
        return entity

    async def delete(self, db: AsyncSession, entity_id: UUID) -> None:
        """
        Permanently delete an entity.

        Raises:
            NotFoundError: If the entity does not exist.

        Note:
            Does not commit. Caller (session generator) handles commit at request end.
        """
        entity = await self.require(db, entity_id)
        await db.delete(entity)
        await db.flush()
