"""Service layer for user creation, lookup, and role checks."""
import asyncio
import random
from collections.abc import Iterable
from datetime import UTC, datetime
from uuid import UUID

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import Role, User
from services.base_resource_service import is_unique_violation
from services.exceptions import DuplicateError, ValidationError

BCRYPT_ROUNDS = 10


async def hash_password(password: str) -> str:
    """Hash a password with bcrypt off the event loop."""
    hashed = await asyncio.to_thread(
        bcrypt.hashpw, password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS),
    )
    return hashed.decode("utf-8")


async def check_password(password: str, password_hash: str) -> bool:
    """Compare a plaintext password against a bcrypt hash off the event loop."""
    return await asyncio.to_thread(
        bcrypt.checkpw, password.encode("utf-8"), password_hash.encode("utf-8"),
    )


async def generate_campus_id(db: AsyncSession) -> str:
    """Generate an unused campus id: current year followed by four random digits."""
    year = datetime.now(UTC).year
    while True:
        candidate = f"{year}{random.randint(1000, 9999)}"
        result = await db.execute(select(User.id).where(User.campus_id == candidate))
        if result.first() is None:
            return candidate


async def get_user(db: AsyncSession, user_id: UUID) -> User | None:
    """Get a user by id."""
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Get a user by exact email."""
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_role_by_email(db: AsyncSession, email: str) -> str | None:
    """Get only the role for an email (case-insensitive), None if unknown."""
    result = await db.execute(
        select(User.role).where(User.email == email.strip().lower()),
    )
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: str = Role.STUDENT.value,
) -> User:
    """
    Create a user with a hashed password and a fresh campus id.

    Raises:
        DuplicateError: If the email is already registered, including when a
            concurrent registration for the same email wins the insert.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    if await get_user_by_email(db, email) is not None:
        raise DuplicateError("User already exists with this email")

    user = User(
        campus_id=await generate_campus_id(db),
        name=name,
        email=email,
        password_hash=await hash_password(password),
        role=role,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        if is_unique_violation(e):
            raise DuplicateError("User already exists with this email") from e
        raise
    return user


async def require_user_with_role(
    db: AsyncSession,
    user_id: UUID,
    allowed_roles: Iterable[str],
) -> User:
    """
    Load a user and check they hold one of the allowed roles.

    Raises:
        ValidationError: If the user does not exist or has another role.
    """
    allowed = list(allowed_roles)
    user = await db.get(User, user_id)
    if user is None or user.role not in allowed:
        raise ValidationError(
            f"User with ID {user_id} does not exist or is not a {' or '.join(allowed)}",
        )
    return user


async def require_users_with_role(
    db: AsyncSession,
    user_ids: Iterable[UUID],
    allowed_roles: Iterable[str],
) -> list[User]:
    """
    Load several users in one query, checking each holds an allowed role.

    Raises:
        ValidationError: Naming the first id that is missing or has another role.
    """
    allowed = list(allowed_roles)
    ids = list(dict.fromkeys(user_ids))
    if not ids:
        return []
    result = await db.execute(select(User).where(User.id.in_(ids)))
    found = {user.id: user for user in result.scalars()}
    for user_id in ids:
        user = found.get(user_id)
        if user is None or user.role not in allowed:
            raise ValidationError(
                f"User with ID {user_id} does not exist or is not a {' or '.join(allowed)}",
            )
    return [found[user_id] for user_id in ids]
