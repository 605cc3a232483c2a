"""Tests for the Redis wrapper: the throttle window script and offline behavior."""
from unittest.mock import AsyncMock, patch

from redis.exceptions import NoScriptError, RedisError

from core.redis import RedisClient


class TestFixedWindowScript:
    """Tests for the fixed window Lua script used in rate limiting."""

    async def test__connect__registers_window_script(
        self, redis_client: RedisClient,
    ) -> None:
        """Connecting registers the throttle script on the live client."""
        assert redis_client.is_connected is True
        assert redis_client._window_script is not None

    async def test__eval_fixed_window__counts_down_then_denies(
        self, redis_client: RedisClient,
    ) -> None:
        """Requests within the limit are allowed with decreasing remaining count."""
        for expected_remaining in (2, 1, 0):
            allowed, remaining, ttl, retry_after = await redis_client.eval_fixed_window(
                "test:fixed", max_requests=3, window_seconds=60,
            )
            assert allowed == 1
            assert remaining == expected_remaining
            assert 0 < ttl <= 60
            assert retry_after == 0

        allowed, remaining, ttl, retry_after = await redis_client.eval_fixed_window(
            "test:fixed", max_requests=3, window_seconds=60,
        )
        assert allowed == 0
        assert remaining == 0
        assert retry_after == ttl

    async def test__eval_fixed_window__keys_are_independent(
        self, redis_client: RedisClient,
    ) -> None:
        """Exhausting one bucket does not affect another."""
        await redis_client.eval_fixed_window("test:a", max_requests=1, window_seconds=60)
        denied = await redis_client.eval_fixed_window("test:a", max_requests=1, window_seconds=60)
        other = await redis_client.eval_fixed_window("test:b", max_requests=1, window_seconds=60)

        assert denied[0] == 0
        assert other[0] == 1

    async def test__eval_fixed_window__reloads_script_after_noscript(
        self, redis_client: RedisClient,
    ) -> None:
        """A NOSCRIPT error (Redis restarted) reloads the script and retries once."""
        evalsha = AsyncMock(side_effect=[NoScriptError("NOSCRIPT"), [1, 4, 60, 0]])
        script_load = AsyncMock(return_value="sha")

        with (
            patch.object(redis_client._client, "evalsha", evalsha),
            patch.object(redis_client._client, "script_load", script_load),
        ):
            result = await redis_client.eval_fixed_window(
                "test:reload", max_requests=5, window_seconds=60,
            )

        assert result == [1, 4, 60, 0]
        assert evalsha.await_count == 2
        script_load.assert_awaited_once()

    async def test__eval_fixed_window__repairs_bucket_without_expiry(
        self, redis_client: RedisClient,
    ) -> None:
        """A bucket left without a TTL gets the window expiry back."""
        await redis_client._client.set("test:stuck", 7)

        allowed, remaining, ttl, retry_after = await redis_client.eval_fixed_window(
            "test:stuck", max_requests=10, window_seconds=60,
        )

        assert (allowed, remaining, ttl, retry_after) == (1, 2, 60, 0)
        assert 0 < await redis_client._client.ttl("test:stuck") <= 60


class TestRedisFallback:
    """Tests for graceful degradation when Redis is unavailable."""

    async def test__disabled_client__commands_return_misses(self) -> None:
        """A disabled client never connects and every command is a miss."""
        client = RedisClient(url="redis://unused", enabled=False)
        await client.connect()

        assert client.is_connected is False
        assert await client.ping() is False
        assert await client.get("key") is None
        assert await client.setex("key", 10, "value") is False
        assert await client.delete("key") is False
        assert await client.eval_fixed_window("key", 5, 60) is None

    async def test__connect__failure_leaves_client_disconnected(self) -> None:
        """A ping failure during connect degrades instead of raising."""
        broken = AsyncMock()
        broken.ping.side_effect = RedisError("connection refused")
        client = RedisClient(url="redis://unused", client=broken)

        await client.connect()

        assert client.is_connected is False
        assert await client.eval_fixed_window("key", 5, 60) is None

    async def test__get__redis_error_returns_none(
        self, redis_client: RedisClient,
    ) -> None:
        """A RedisError during GET is treated as a cache miss."""
        with patch.object(
            redis_client._client, "get", AsyncMock(side_effect=RedisError("boom")),
        ):
            assert await redis_client.get("key") is None

    async def test__eval_fixed_window__redis_error_returns_none(
        self, redis_client: RedisClient,
    ) -> None:
        """A RedisError during the script call fails open (None)."""
        with patch.object(
            redis_client._client, "evalsha", AsyncMock(side_effect=RedisError("boom")),
        ):
            assert await redis_client.eval_fixed_window("key", 5, 60) is None
