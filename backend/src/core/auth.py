"""Authentication dependencies: bearer access tokens and role gates."""
import logging
from collections.abc import Awaitable, Callable
from uuid import UUID

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from core.session_cache import SessionCache, get_session_cache
from db.session import get_async_session
from schemas.cached_user import CachedUser
from services import token_service, user_service
from services.exceptions import ForbiddenError, UnauthorizedError

logger = logging.getLogger(__name__)


# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def decode_jwt(token: str, settings: Settings) -> UUID:
    """
    Decode an access token and return the user id it names.

    Raises:
        UnauthorizedError: If the token is expired, malformed, or badly signed.
    """
    try:
        payload = token_service.decode_access_token(token, settings)
        return UUID(str(payload["sub"]))
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired")
    except (jwt.PyJWTError, KeyError, ValueError) as e:
        # Log full details for debugging (server-side only)
        logger.warning("JWT validation failed: %s", e)
        raise UnauthorizedError("Invalid or expired token")


async def _authenticate_user(
    credentials: HTTPAuthorizationCredentials | None,
    db: AsyncSession,
    cache: SessionCache,
    settings: Settings,
) -> CachedUser:
    """
    Internal: resolve the bearer token to a user snapshot.

    The snapshot comes from the session cache when present, otherwise from the
    database (and is then cached).
    """
    if credentials is None:
        raise UnauthorizedError("No token provided or token malformed")

    user_id = decode_jwt(credentials.credentials, settings)

    user = await cache.get_user(user_id)
    if user is not None:
        return user

    db_user = await user_service.get_user(db, user_id)
    if db_user is None:
        raise UnauthorizedError("User not found or unauthorized")
    user = CachedUser.from_user(db_user)
    await cache.set_user(user)
    return user


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    cache: SessionCache = Depends(get_session_cache),
    settings: Settings = Depends(get_settings),
) -> CachedUser:
    """
    Dependency that validates the bearer token and returns the current user.

    Also attaches the user to request.state so later dependencies (the
    role-based rate limiter) can see who is calling.
    """
    user = await _authenticate_user(credentials, db, cache, settings)
    request.state.user = user
    return user


def require_roles(*roles: str) -> Callable[..., Awaitable[CachedUser]]:
    """
    Build a dependency that admits only users holding one of ``roles``.

    Must run after get_current_user; it reuses the cached dependency result.
    """
    allowed = frozenset(roles)

    async def check_role(user: CachedUser = Depends(get_current_user)) -> CachedUser:
        if user.role not in allowed:
            raise ForbiddenError(f"Access denied: Role '{user.role}' not allowed")
        return user

    return check_role
