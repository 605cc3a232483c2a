"""Service layer for access and refresh token issuance."""
import hashlib
import hmac
import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import jwt
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User
from services.exceptions import NotFoundError

if TYPE_CHECKING:
    from core.config import Settings
    from schemas.cached_user import CachedUser


def generate_refresh_token() -> tuple[str, str]:
    """
    Generate a secure opaque refresh token.

    Returns:
        Tuple of (plaintext_token, token_hash).
        The plaintext should only be handed to the client once.
    """
    plaintext = secrets.token_hex(64)
    return plaintext, hash_token(plaintext)


def hash_token(token: str) -> str:
    """Hash a token for comparison against stored hashes."""
    return hashlib.sha256(token.encode()).hexdigest()


def _as_aware(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite drops tzinfo) as UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def issue_access_token(user: "User | CachedUser", settings: "Settings") -> str:
    """
    Sign a short-lived access token carrying the user id and role.

    Stateless: nothing is persisted.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_ttl_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: "Settings") -> dict[str, Any]:
    """
    Verify signature and expiry of an access token and return its claims.

    Raises:
        jwt.PyJWTError: If the token is malformed, expired, or badly signed.
    """
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "exp"]},
    )


async def issue_refresh_token(
    db: AsyncSession,
    user: "User | CachedUser",
    settings: "Settings",
) -> str:
    """
    Mint a refresh token and persist its hash and expiry on the user record.

    Works from either an ORM User or a cached snapshot; the record is updated
    by id, and a loaded User in this session is synchronized.

    Returns:
        The plaintext token. This is the only time it is available.

    Raises:
        NotFoundError: If the user record no longer exists.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    plaintext, token_hash = generate_refresh_token()
    expires_at = datetime.now(UTC) + timedelta(days=settings.refresh_token_ttl_days)

    result = await db.execute(
        update(User)
        .where(User.id == user.id)
        .values(refresh_token_hash=token_hash, refresh_token_expires_at=expires_at),
    )
    if result.rowcount == 0:
        raise NotFoundError("User not found")
    return plaintext


def verify_refresh_token(user: User, candidate: str) -> bool:
    """
    Check a plaintext refresh token against the user's stored hash.

    Fails if nothing is stored or the stored expiry has passed; otherwise
    compares in constant time.
    """
    if not user.refresh_token_hash:
        return False
    if (
        user.refresh_token_expires_at is not None
        and _as_aware(user.refresh_token_expires_at) < datetime.now(UTC)
    ):
        return False
    return hmac.compare_digest(hash_token(candidate), user.refresh_token_hash)


async def find_user_by_refresh_token(db: AsyncSession, candidate: str) -> User | None:
    """
    Look up the user holding a refresh token, by stored hash.

    Hashes the input before lookup so the query never sees plaintext, then
    applies verify_refresh_token so expired tokens are rejected.
    """
    result = await db.execute(
        select(User).where(User.refresh_token_hash == hash_token(candidate)),
    )
    user = result.scalar_one_or_none()
    if user is None or not verify_refresh_token(user, candidate):
        return None
    return user


async def revoke_refresh_token(db: AsyncSession, user_id: Any) -> None:
    """
    Clear the stored refresh-token hash and expiry for a user.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(refresh_token_hash=None, refresh_token_expires_at=None),
    )
