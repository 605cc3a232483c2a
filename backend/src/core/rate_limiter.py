"""
Redis-based rate limiting enforcement.

This module contains the enforcement logic - the "how" of rate limiting.
For configuration (limits per tier), see rate_limit_config.py.

Two limiters exist, both fixed-window counters in Redis. The role-based
dependency picks one per request from the caller's role, which it resolves
without requiring authentication to have run:

1. an authenticated user already on request.state -> its role
2. an ``email`` in the JSON body -> cached email->role lookup, falling back to
   the database and caching the answer for 10 minutes
3. otherwise no role (strict limiter)

Every bucket key is the client IP combined with the body email when present,
else with the authenticated user id, else the IP alone.
"""
import logging
import time
from typing import Any

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.rate_limit_config import (
    UNKNOWN_ROLE,
    LimiterTier,
    RateLimitExceededError,
    RateLimitResult,
    tier_for_role,
)
from core.redis import RedisClient, get_redis_client
from core.session_cache import SessionCache, get_session_cache
from db.session import get_async_session
from services import user_service

logger = logging.getLogger(__name__)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


async def check_rate_limit(
    redis_client: RedisClient | None,
    tier: LimiterTier,
    key: str,
) -> RateLimitResult:
    """
    Count one request against a fixed-window bucket and report the outcome.

    Falls back to allowing requests if Redis is unavailable.
    """
    # Import at call time so tests can monkeypatch rate_limit_config.RATE_LIMITS
    from core.rate_limit_config import RATE_LIMITS

    config = RATE_LIMITS[tier]
    now = int(time.time())

    if redis_client is None or not redis_client.is_connected:
        # Redis unavailable - fail open
        logger.warning("redis_unavailable", extra={"operation": "rate_limit"})
        return RateLimitResult(
            allowed=True,
            limit=config.max_requests,
            remaining=config.max_requests,
            reset=0,
            retry_after=0,
        )

    result = await redis_client.eval_fixed_window(
        key=f"rate:{tier.value}:{key}",
        max_requests=config.max_requests,
        window_seconds=config.window_seconds,
    )

    if result is None:
        # Redis unavailable - fail open
        return RateLimitResult(
            allowed=True,
            limit=config.max_requests,
            remaining=config.max_requests,
            reset=0,
            retry_after=0,
        )

    allowed, remaining, ttl, retry_after = result
    return RateLimitResult(
        allowed=bool(allowed),
        limit=config.max_requests,
        remaining=max(0, remaining),
        reset=now + ttl if ttl > 0 else now + config.window_seconds,
        retry_after=max(0, retry_after) if not allowed else 0,
    )


def client_ip(request: Request) -> str:
    """Best-effort client address."""
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def build_rate_limit_key(ip: str, email: str | None = None, user_id: Any = None) -> str:
    """Compose the bucket identity: IP plus email, else IP plus user id, else IP."""
    if email:
        return f"{ip}:{email}"
    if user_id is not None:
        return f"{ip}:{user_id}"
    return ip


async def request_email(request: Request) -> str | None:
    """Lower-cased ``email`` from a JSON request body, None if absent or unreadable."""
    if request.method not in BODY_METHODS:
        return None
    try:
        body = await request.json()
    except ValueError:
        return None
    email = body.get("email") if isinstance(body, dict) else None
    if not isinstance(email, str) or not email.strip():
        return None
    return email.strip().lower()


async def resolve_role(
    request: Request,
    email: str | None,
    db: AsyncSession,
    cache: SessionCache,
) -> str | None:
    """
    Work out the caller's role without requiring authentication.

    Returns:
        The role, UNKNOWN_ROLE for an unregistered email, or None when the
        request carries neither a user nor an email.
    """
    user = getattr(request.state, "user", None)
    if user is not None:
        return user.role
    if not email:
        return None

    role = await cache.get_role(email)
    if role:
        return role
    role = await user_service.get_role_by_email(db, email) or UNKNOWN_ROLE
    await cache.set_role(email, role)
    return role


async def enforce_rate_limit(
    request: Request,
    redis_client: RedisClient | None,
    tier: LimiterTier,
    email: str | None,
) -> RateLimitResult:
    """
    Apply one limiter to a request.

    Stores header info on request.state for RateLimitHeadersMiddleware.

    Raises:
        RateLimitExceededError: If the bucket is exhausted.
    """
    from core.rate_limit_config import RATE_LIMITS

    user = getattr(request.state, "user", None)
    key = build_rate_limit_key(
        client_ip(request),
        email=email,
        user_id=user.id if user is not None else None,
    )
    result = await check_rate_limit(redis_client, tier, key)
    if not result.allowed:
        logger.warning(
            "rate_limit_exceeded",
            extra={"key": key, "tier": tier.value, "path": request.url.path},
        )
        raise RateLimitExceededError(result, RATE_LIMITS[tier].message)

    request.state.rate_limit_info = {
        "limit": result.limit,
        "remaining": result.remaining,
        "reset": result.reset,
    }
    return result


async def role_based_rate_limit(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
    redis_client: RedisClient | None = Depends(get_redis_client),
    cache: SessionCache = Depends(get_session_cache),
) -> None:
    """
    Dependency: moderate limiter for admins, strict limiter for everyone else.

    Role resolution never fails the request; any error routes to the strict limiter.
    """
    email = await request_email(request)
    try:
        role = await resolve_role(request, email, db, cache)
        tier = tier_for_role(role)
    except Exception:
        logger.exception("role_resolution_failed")
        tier = LimiterTier.STRICT
    await enforce_rate_limit(request, redis_client, tier, email)


async def moderate_rate_limit(
    request: Request,
    redis_client: RedisClient | None = Depends(get_redis_client),
) -> None:
    """Dependency: moderate limiter regardless of role."""
    email = await request_email(request)
    await enforce_rate_limit(request, redis_client, LimiterTier.MODERATE, email)

