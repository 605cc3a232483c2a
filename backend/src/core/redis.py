"""
Thin async Redis wrapper shared by the session cache and the request throttle.

Only the commands those two callers need are exposed. Each one degrades to a
miss when Redis is switched off, never came up, or errors mid-request, so the
API keeps serving from the database and the throttle fails open.
"""
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request
from redis.asyncio import ConnectionPool, Redis
from redis.commands.core import AsyncScript
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

# One fixed-window bucket per key. KEYS[1] = bucket, ARGV = {quota, window}.
# The first hit of a window starts its expiry; a bucket that somehow lost its
# expiry gets a fresh one instead of blocking forever.
# Reply: {allowed, remaining, seconds_to_reset, retry_after}
THROTTLE_WINDOW_LUA = """
local bucket = KEYS[1]
local quota = tonumber(ARGV[1])
local window = tonumber(ARGV[2])

local hits = redis.call('INCR', bucket)
local ttl = redis.call('TTL', bucket)
if hits == 1 or ttl < 0 then
    redis.call('EXPIRE', bucket, window)
    ttl = window
end

local left = quota - hits
if left >= 0 then
    return {1, left, ttl, 0}
end
return {0, 0, ttl, ttl}
"""


class RedisClient:
    """Pooled Redis connection whose commands never raise RedisError."""

    def __init__(
        self,
        url: str,
        enabled: bool = True,
        pool_size: int = 20,
        client: Redis | None = None,
    ) -> None:
        self._url = url
        self._enabled = enabled
        self._pool_size = pool_size
        # fakeredis in tests; connect() then skips building a pool
        self._injected = client
        self._client: Redis | None = None
        self._window_script: AsyncScript | None = None

    async def connect(self) -> None:
        """Open the pool and register the throttle script; stay offline on failure."""
        if not self._enabled:
            logger.info("redis_disabled")
            return
        client = self._injected or Redis(
            connection_pool=ConnectionPool.from_url(
                self._url, max_connections=self._pool_size,
            ),
        )
        try:
            await client.ping()
        except RedisError as e:
            logger.warning("redis_connect_failed", extra={"error": str(e)})
            if self._injected is None:
                await client.aclose()
            return
        self._client = client
        # AsyncScript reloads itself after a NOSCRIPT reply (e.g. Redis restarted)
        self._window_script = client.register_script(THROTTLE_WINDOW_LUA)
        logger.info("redis_connected")

    async def close(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        self._window_script = None
        logger.info("redis_closed")

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def _attempt(
        self, command: str, call: Callable[[Redis], Awaitable[Any]],
    ) -> Any:
        """Run one command, returning None when offline or on RedisError."""
        if self._client is None:
            return None
        try:
            return await call(self._client)
        except RedisError as e:
            logger.warning("redis_command_failed", extra={"command": command, "error": str(e)})
            return None

    async def ping(self) -> bool:
        return bool(await self._attempt("PING", lambda r: r.ping()))

    async def get(self, key: str) -> bytes | None:
        return await self._attempt("GET", lambda r: r.get(key))

    async def setex(self, key: str, seconds: int, value: str | bytes) -> bool:
        """Store with a TTL. False means the value was not cached."""
        stored = await self._attempt("SETEX", lambda r: r.setex(key, seconds, value))
        return stored is not None

    async def delete(self, *keys: str) -> bool:
        """Drop keys. False means Redis could not be reached."""
        removed = await self._attempt("DEL", lambda r: r.delete(*keys))
        return removed is not None

    async def eval_fixed_window(
        self,
        key: str,
        max_requests: int,
        window_seconds: int,
    ) -> list[int] | None:
        """
        Count one hit against the bucket at ``key``.

        Returns:
            [allowed, remaining, seconds_to_reset, retry_after], or None when
            Redis cannot answer and the caller should let the request through.
        """
        script = self._window_script
        if script is None:
            return None
        return await self._attempt(
            "EVALSHA",
            lambda r: script(keys=[key], args=[max_requests, window_seconds], client=r),
        )


def get_redis_client(request: Request) -> RedisClient | None:
    """Dependency: the application's Redis client, None before startup."""
    return getattr(request.app.state, "redis_client", None)
