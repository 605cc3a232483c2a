"""Tests for the Redis-based rate limiter module."""
import json
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from core import rate_limit_config
from core.rate_limit_config import (
    RATE_LIMITS,
    LimiterTier,
    RateLimitConfig,
    RateLimitExceededError,
    tier_for_role,
)
from core.rate_limiter import (
    build_rate_limit_key,
    check_rate_limit,
    enforce_rate_limit,
    request_email,
    resolve_role,
)
from core.redis import RedisClient
from core.session_cache import SessionCache
from models.user import Role
from schemas.cached_user import CachedUser
from services import user_service

STRICT_CONFIG = RATE_LIMITS[LimiterTier.STRICT]
MODERATE_CONFIG = RATE_LIMITS[LimiterTier.MODERATE]


def make_request(method: str = "GET", body: bytes = b"") -> Request:
    """Build a bare request whose body can be read once."""
    scope = {
        "type": "http",
        "method": method,
        "path": "/auth/login",
        "headers": [(b"content-type", b"application/json")],
        "client": ("10.0.0.1", 5000),
        "query_string": b"",
    }

    async def receive() -> dict:
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


@pytest.fixture
def tiny_limits(monkeypatch: pytest.MonkeyPatch) -> None:
    """Shrink both limiters to two requests per window."""
    monkeypatch.setattr(
        rate_limit_config,
        "RATE_LIMITS",
        {
            LimiterTier.STRICT: RateLimitConfig(2, 60, STRICT_CONFIG.message),
            LimiterTier.MODERATE: RateLimitConfig(2, 60, MODERATE_CONFIG.message),
        },
    )


class TestPolicy:
    """Tests for the configured limits and tier selection."""

    def test__strict_limit__100_per_15_minutes(self) -> None:
        """The strict limiter allows 100 requests per 15 minutes."""
        assert STRICT_CONFIG.max_requests == 100
        assert STRICT_CONFIG.window_seconds == 900
        assert "15 minute" in STRICT_CONFIG.message

    def test__moderate_limit__200_per_hour(self) -> None:
        """The moderate limiter allows 200 requests per hour."""
        assert MODERATE_CONFIG.max_requests == 200
        assert MODERATE_CONFIG.window_seconds == 3600
        assert "an hour" in MODERATE_CONFIG.message

    @pytest.mark.parametrize(
        ("role", "tier"),
        [
            ("admin", LimiterTier.MODERATE),
            ("teacher", LimiterTier.STRICT),
            ("student", LimiterTier.STRICT),
            ("user", LimiterTier.STRICT),
            (None, LimiterTier.STRICT),
        ],
    )
    def test__tier_for_role__only_admin_is_moderate(
        self, role: str | None, tier: LimiterTier,
    ) -> None:
        """Admins get the moderate limiter; everyone else the strict one."""
        assert tier_for_role(role) == tier


class TestBuildRateLimitKey:
    """Tests for bucket identity."""

    def test__key__ip_and_email(self) -> None:
        """Email wins over user id."""
        assert build_rate_limit_key("1.2.3.4", email="a@b.c", user_id="u1") == "1.2.3.4:a@b.c"

    def test__key__ip_and_user_id(self) -> None:
        """Without an email the user id is used."""
        assert build_rate_limit_key("1.2.3.4", user_id="u1") == "1.2.3.4:u1"

    def test__key__ip_only(self) -> None:
        """Anonymous callers without an email share the IP bucket."""
        assert build_rate_limit_key("1.2.3.4") == "1.2.3.4"


class TestCheckRateLimit:
    """Tests for check_rate_limit function."""

    async def test__check__allows_request_under_limit(
        self, redis_client: RedisClient,
    ) -> None:
        """Requests under the limit are allowed."""
        result = await check_rate_limit(redis_client, LimiterTier.STRICT, "10.0.0.1")

        assert result.allowed is True
        assert result.limit == STRICT_CONFIG.max_requests
        assert result.remaining == STRICT_CONFIG.max_requests - 1
        assert result.retry_after == 0

    async def test__check__blocks_request_over_limit(
        self, redis_client: RedisClient, tiny_limits: None,  # noqa: ARG002
    ) -> None:
        """Requests over the limit are blocked with a retry-after."""
        for _ in range(2):
            assert (await check_rate_limit(redis_client, LimiterTier.STRICT, "k")).allowed

        result = await check_rate_limit(redis_client, LimiterTier.STRICT, "k")
        assert result.allowed is False
        assert result.remaining == 0
        assert result.retry_after > 0

    async def test__check__tiers_use_separate_buckets(
        self, redis_client: RedisClient, tiny_limits: None,  # noqa: ARG002
    ) -> None:
        """The same key is counted separately per tier."""
        for _ in range(3):
            await check_rate_limit(redis_client, LimiterTier.STRICT, "k")

        result = await check_rate_limit(redis_client, LimiterTier.MODERATE, "k")
        assert result.allowed is True

    async def test__check__fails_open_without_redis(self) -> None:
        """No Redis client means every request is allowed."""
        result = await check_rate_limit(None, LimiterTier.STRICT, "k")
        assert result.allowed is True
        assert result.remaining == STRICT_CONFIG.max_requests

    async def test__check__fails_open_when_disconnected(self) -> None:
        """A disconnected client means every request is allowed."""
        client = RedisClient(url="redis://unused", enabled=False)
        await client.connect()

        result = await check_rate_limit(client, LimiterTier.MODERATE, "k")
        assert result.allowed is True


class TestEnforceRateLimit:
    """Tests for enforce_rate_limit."""

    async def test__enforce__stores_header_info(self, redis_client: RedisClient) -> None:
        """Allowed requests record header values on request.state."""
        request = make_request()
        await enforce_rate_limit(request, redis_client, LimiterTier.STRICT, None)

        info = request.state.rate_limit_info
        assert info["limit"] == STRICT_CONFIG.max_requests
        assert info["remaining"] == STRICT_CONFIG.max_requests - 1

    async def test__enforce__raises_with_tier_message(
        self, redis_client: RedisClient, tiny_limits: None,  # noqa: ARG002
    ) -> None:
        """Exhausted buckets raise with the tier's message."""
        for _ in range(2):
            await enforce_rate_limit(make_request(), redis_client, LimiterTier.MODERATE, None)

        with pytest.raises(RateLimitExceededError) as exc_info:
            await enforce_rate_limit(make_request(), redis_client, LimiterTier.MODERATE, None)
        assert exc_info.value.message == MODERATE_CONFIG.message
        assert exc_info.value.result.retry_after > 0

    async def test__enforce__different_emails_have_separate_buckets(
        self, redis_client: RedisClient, tiny_limits: None,  # noqa: ARG002
    ) -> None:
        """Two emails from one IP are counted separately."""
        for _ in range(2):
            await enforce_rate_limit(make_request(), redis_client, LimiterTier.STRICT, "a@x.io")

        await enforce_rate_limit(make_request(), redis_client, LimiterTier.STRICT, "b@x.io")


class TestRequestEmail:
    """Tests for reading the email from the body."""

    async def test__request_email__lower_cased(self) -> None:
        """The body email is trimmed and lower-cased."""
        request = make_request("POST", json.dumps({"email": " Ann@Campus.Test "}).encode())
        assert await request_email(request) == "ann@campus.test"

    async def test__request_email__ignores_get(self) -> None:
        """GET requests have no body email."""
        request = make_request("GET", json.dumps({"email": "a@b.c"}).encode())
        assert await request_email(request) is None

    async def test__request_email__invalid_json_is_none(self) -> None:
        """Unparseable bodies yield no email."""
        assert await request_email(make_request("POST", b"{not json")) is None

    async def test__request_email__non_object_body_is_none(self) -> None:
        """A JSON array body yields no email."""
        assert await request_email(make_request("POST", b'["a@b.c"]')) is None


class TestResolveRole:
    """Tests for role resolution without authentication."""

    async def test__resolve_role__authenticated_user_wins(
        self, db_session: AsyncSession, session_cache: SessionCache,
    ) -> None:
        """A user on request.state supplies the role directly."""
        request = make_request()
        request.state.user = CachedUser(
            id=uuid4(), campus_id="20240001", name="A", email="a@b.c", role="admin",
        )
        assert await resolve_role(request, "other@b.c", db_session, session_cache) == "admin"

    async def test__resolve_role__no_user_no_email_is_none(
        self, db_session: AsyncSession, session_cache: SessionCache,
    ) -> None:
        """Without a user or an email there is no role."""
        assert await resolve_role(make_request(), None, db_session, session_cache) is None

    async def test__resolve_role__database_lookup_is_cached(
        self, db_session: AsyncSession, session_cache: SessionCache,
    ) -> None:
        """A registered email resolves from the database and is then cached."""
        await user_service.create_user(
            db_session, name="Admin", email="boss@campus.test", password="secret",
            role=Role.ADMIN.value,
        )

        role = await resolve_role(make_request(), "boss@campus.test", db_session, session_cache)

        assert role == "admin"
        assert await session_cache.get_role("boss@campus.test") == "admin"

    async def test__resolve_role__unknown_email_is_user(
        self, db_session: AsyncSession, session_cache: SessionCache,
    ) -> None:
        """An unregistered email resolves to the generic user role."""
        role = await resolve_role(make_request(), "nobody@campus.test", db_session, session_cache)
        assert role == "user"
        assert tier_for_role(role) == LimiterTier.STRICT

    async def test__resolve_role__cache_hit_skips_database(
        self, db_session: AsyncSession, session_cache: SessionCache,
    ) -> None:
        """A cached role is used even though no such user exists in the database."""
        await session_cache.set_role("ghost@campus.test", "admin")

        role = await resolve_role(make_request(), "ghost@campus.test", db_session, session_cache)
        assert role == "admin"
