"""Session caching for refresh-token rotation and authenticated user lookups."""
import json
import logging
from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import Request

from schemas.cached_user import CachedUser
from services.token_service import hash_token

if TYPE_CHECKING:
    from core.redis import RedisClient
    from models.user import User

logger = logging.getLogger(__name__)

# Cache schema version - included in all cache keys (e.g., "session:v1:user:...")
#
# Bump this version when CachedUser fields are added, removed, or renamed.
# Old entries are then never found (cache miss) and expire naturally via TTL.
CACHE_SCHEMA_VERSION = 1


class SessionCache:
    """
    Cache for refresh-token sessions and user snapshots.

    Three independent entries are kept:
    - refresh token -> user id (lives as long as the refresh token)
    - user id -> serialized user snapshot
    - lower-cased email -> role (used only by the rate limiter)

    Refresh tokens are keyed by their SHA-256 digest so plaintext tokens never
    reach Redis. Any unreadable entry is treated as a miss.
    """

    REFRESH_TTL = 7 * 24 * 60 * 60  # 7 days
    USER_TTL = 3600  # 1 hour
    ROLE_TTL = 600  # 10 minutes

    def __init__(self, redis_client: "RedisClient") -> None:
        """Initialize session cache with Redis client."""
        self._redis = redis_client

    def _cache_key_refresh(self, refresh_token: str) -> str:
        """Generate cache key for a refresh token."""
        return f"session:v{CACHE_SCHEMA_VERSION}:refresh:{hash_token(refresh_token)}"

    def _cache_key_user(self, user_id: UUID | str) -> str:
        """Generate cache key for a user snapshot."""
        return f"session:v{CACHE_SCHEMA_VERSION}:user:{user_id}"

    def _cache_key_role(self, email: str) -> str:
        """Generate cache key for an email -> role lookup."""
        return f"session:v{CACHE_SCHEMA_VERSION}:role:{email.strip().lower()}"

    async def get_user_id(self, refresh_token: str) -> UUID | None:
        """
        Resolve the user id a refresh token was issued to.

        Returns:
            The user id on cache hit, None on miss or unreadable entry.
        """
        data = await self._redis.get(self._cache_key_refresh(refresh_token))
        if not data:
            logger.debug("session_cache_miss kind=refresh")
            return None
        try:
            return UUID(data.decode() if isinstance(data, bytes) else data)
        except ValueError:
            logger.warning("session_cache_corrupt kind=refresh")
            return None

    async def get_user(self, user_id: UUID | str) -> CachedUser | None:
        """
        Get cached user snapshot by user ID.

        Returns:
            CachedUser if found in cache, None on cache miss.
        """
        data = await self._redis.get(self._cache_key_user(user_id))
        if data:
            logger.debug("session_cache_hit user_id=%s", user_id)
            return self._deserialize(data)
        logger.debug("session_cache_miss user_id=%s", user_id)
        return None

    async def set_user(self, user: "User | CachedUser") -> None:
        """Cache a user snapshot (1 hour)."""
        cached = user if isinstance(user, CachedUser) else CachedUser.from_user(user)
        await self._redis.setex(
            self._cache_key_user(cached.id),
            self.USER_TTL,
            json.dumps(cached.to_json_dict()),
        )

    async def set_session(self, user: "User | CachedUser", refresh_token: str) -> None:
        """
        Cache a freshly issued refresh token and the user snapshot.

        Args:
            user: The user the token belongs to.
            refresh_token: The plaintext refresh token.
        """
        await self._redis.setex(
            self._cache_key_refresh(refresh_token),
            self.REFRESH_TTL,
            str(user.id),
        )
        await self.set_user(user)
        logger.debug("session_cache_set user_id=%s", user.id)

    async def invalidate_session(self, user_id: UUID | str, refresh_token: str) -> None:
        """Delete the refresh-token entry and the user snapshot."""
        await self._redis.delete(
            self._cache_key_refresh(refresh_token),
            self._cache_key_user(user_id),
        )
        logger.debug("session_cache_invalidate user_id=%s", user_id)

    async def get_role(self, email: str) -> str | None:
        """Get the cached role for an email, None on miss."""
        data = await self._redis.get(self._cache_key_role(email))
        if not data:
            return None
        return data.decode() if isinstance(data, bytes) else data

    async def set_role(self, email: str, role: str) -> None:
        """Cache the role for an email (10 minutes)."""
        await self._redis.setex(self._cache_key_role(email), self.ROLE_TTL, role)

    def _deserialize(self, data: bytes) -> CachedUser | None:
        """Deserialize cached data to CachedUser, None if the entry is unreadable."""
        try:
            d = json.loads(data)
            d["id"] = UUID(d["id"])
            return CachedUser(**d)
        except (ValueError, TypeError, KeyError):
            logger.warning("session_cache_corrupt kind=user")
            return None


def get_session_cache(request: Request) -> SessionCache:
    """Dependency: the application's session cache."""
    return request.app.state.session_cache
