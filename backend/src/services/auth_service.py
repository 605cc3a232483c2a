"""
Authentication flow: register, login, refresh and logout.

Every successful flow ends the same way: a new access token, a new refresh
token whose hash is stored on the user record, and matching session cache
entries. The refresh token is returned to the router, which puts it in the
http-only cookie.

Refresh and logout resolve the caller from the refresh token in two steps:

1. Session cache: refresh token -> user id, then the cached user snapshot
   (falling back to the database by id if the snapshot has expired).
2. Database: lookup by the token's SHA-256 hash, accepted only while the stored
   expiry has not passed.

Cache entries for a new refresh token are written only after its hash has been
committed, so a failed commit never leaves the cache pointing at a token the
database does not know.

Concurrent refreshes of one session can race; the last rotation wins and
invalidates the token handed out by the other.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.session_cache import SessionCache
from schemas.auth import LoginRequest, RegisterRequest
from schemas.cached_user import CachedUser
from services import token_service, user_service
from services.exceptions import ForbiddenError, NotFoundError, UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass
class IssuedSession:
    """Outcome of a successful register/login/refresh."""

    user: CachedUser
    access_token: str
    refresh_token: str


async def _issue_session(
    db: AsyncSession,
    cache: SessionCache,
    settings: Settings,
    user: CachedUser,
) -> IssuedSession:
    """Issue both tokens, commit the stored hash, then populate the session cache."""
    access_token = token_service.issue_access_token(user, settings)
    refresh_token = await token_service.issue_refresh_token(db, user, settings)
    await db.commit()
    await cache.set_session(user, refresh_token)
    return IssuedSession(user=user, access_token=access_token, refresh_token=refresh_token)


async def register(
    db: AsyncSession,
    cache: SessionCache,
    settings: Settings,
    data: RegisterRequest,
) -> IssuedSession:
    """
    Create a user and open a session for them.

    Raises:
        DuplicateError: If the email is already registered.
    """
    user = await user_service.create_user(
        db,
        name=data.name,
        email=data.email,
        password=data.password,
        role=data.role.value,
    )
    logger.info("user_registered", extra={"user_id": str(user.id), "role": user.role})
    return await _issue_session(db, cache, settings, CachedUser.from_user(user))


async def login(
    db: AsyncSession,
    cache: SessionCache,
    settings: Settings,
    data: LoginRequest,
) -> IssuedSession:
    """
    Check credentials and open a session.

    Raises:
        UnauthorizedError: If the email is unknown or the password is wrong.
    """
    user = await user_service.get_user_by_email(db, data.email)
    if user is None or not await user_service.check_password(data.password, user.password_hash):
        raise UnauthorizedError("Invalid credentials")
    logger.info("user_logged_in", extra={"user_id": str(user.id)})
    return await _issue_session(db, cache, settings, CachedUser.from_user(user))


async def resolve_refresh_token(
    db: AsyncSession,
    cache: SessionCache,
    refresh_token: str,
) -> CachedUser | None:
    """
    Find the user a refresh token belongs to (cache first, then database).

    Returns:
        The user snapshot, or None if neither step resolves the token.
    """
    user_id = await cache.get_user_id(refresh_token)
    if user_id is not None:
        cached = await cache.get_user(user_id)
        if cached is not None:
            return cached
        user = await user_service.get_user(db, user_id)
        return CachedUser.from_user(user) if user is not None else None

    user = await token_service.find_user_by_refresh_token(db, refresh_token)
    if user is not None:
        logger.info("session_resolved_from_database", extra={"user_id": str(user.id)})
        return CachedUser.from_user(user)
    return None


async def refresh(
    db: AsyncSession,
    cache: SessionCache,
    settings: Settings,
    refresh_token: str | None,
) -> IssuedSession:
    """
    Rotate a session: new access token, new refresh token, old one dropped.

    Raises:
        UnauthorizedError: If no refresh token was presented.
        ForbiddenError: If the token does not resolve to a user.
    """
    if not refresh_token:
        raise UnauthorizedError("No refresh token found")

    user = await resolve_refresh_token(db, cache, refresh_token)
    if user is None:
        raise ForbiddenError("Invalid refresh token")

    access_token = token_service.issue_access_token(user, settings)
    try:
        new_refresh_token = await token_service.issue_refresh_token(db, user, settings)
    except NotFoundError as e:
        # Cached snapshot outlived the user record
        raise ForbiddenError("Invalid refresh token") from e
    await db.commit()

    # Old entries go before new ones are written
    await cache.invalidate_session(user.id, refresh_token)
    await cache.set_session(user, new_refresh_token)
    logger.info("session_rotated", extra={"user_id": str(user.id)})
    return IssuedSession(user=user, access_token=access_token, refresh_token=new_refresh_token)


async def logout(
    db: AsyncSession,
    cache: SessionCache,
    refresh_token: str | None,
) -> bool:
    """
    End the session a refresh token belongs to.

    Returns:
        False if there was no token to act on (no-op), True otherwise. An
        unresolvable token still counts as logged out.
    """
    if not refresh_token:
        return False

    user_id = await cache.get_user_id(refresh_token)
    if user_id is None:
        user = await token_service.find_user_by_refresh_token(db, refresh_token)
        user_id = user.id if user is not None else None

    if user_id is not None:
        await token_service.revoke_refresh_token(db, user_id)
        await cache.invalidate_session(user_id, refresh_token)
        logger.info("user_logged_out", extra={"user_id": str(user_id)})
    return True
