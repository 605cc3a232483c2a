"""Tests for the auth endpoints: register, login, refresh and logout."""
import asyncio

from httpx import AsyncClient, Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.user import User

REGISTER_BODY = {
    "name": "Ada Lovelace",
    "email": "ada@campus.test",
    "password": "password123",
}


def refresh_token_from(response: Response) -> str | None:
    """The refresh token the server set in the `jwt` cookie."""
    return response.cookies.get("jwt")


def use_refresh_cookie(client: AsyncClient, token: str) -> None:
    """Send exactly this refresh token as the `jwt` cookie on later requests."""
    client.cookies.clear()
    client.cookies.set("jwt", token)


async def count_users(session_factory: async_sessionmaker[AsyncSession]) -> int:
    """Number of user rows."""
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(User))


class TestRegister:
    """Tests for POST /auth/register."""

    async def test__register__creates_student_by_default(self, client: AsyncClient) -> None:
        """Registration without a role creates a student and returns an access token."""
        response = await client.post("/auth/register", json=REGISTER_BODY)

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "User registered successfully"
        assert data["user"]["role"] == "student"
        assert data["user"]["email"] == "ada@campus.test"
        assert len(data["user"]["campus_id"]) == 8
        assert data["access_token"]
        assert "password" not in str(data)

    async def test__register__sets_http_only_refresh_cookie(self, client: AsyncClient) -> None:
        """The refresh token travels only in an http-only, same-site strict cookie."""
        response = await client.post("/auth/register", json=REGISTER_BODY)

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("jwt=")
        assert "HttpOnly" in set_cookie
        assert "samesite=strict" in set_cookie.lower()
        assert "Max-Age=86400" in set_cookie
        assert refresh_token_from(response) not in response.text

    async def test__register__explicit_role(self, client: AsyncClient) -> None:
        """A role in the body is honored."""
        response = await client.post(
            "/auth/register", json={**REGISTER_BODY, "role": "teacher"},
        )
        assert response.status_code == 201
        assert response.json()["user"]["role"] == "teacher"

    async def test__register__duplicate_email_conflicts(
        self,
        client: AsyncClient,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        """A second registration with the same email is a 409 and creates nothing."""
        await client.post("/auth/register", json=REGISTER_BODY)

        response = await client.post(
            "/auth/register", json={**REGISTER_BODY, "email": "ADA@campus.test"},
        )

        assert response.status_code == 409
        assert response.json()["message"] == "User already exists with this email"
        assert await count_users(session_factory) == 1

    async def test__register__concurrent_same_email(
        self,
        client: AsyncClient,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        """Two simultaneous registrations for one email: one 201, one 409."""
        body = {"name": "A", "email": "race@campus.test", "password": "p1"}

        responses = await asyncio.gather(
            client.post("/auth/register", json=body),
            client.post("/auth/register", json=body),
        )

        assert sorted(r.status_code for r in responses) == [201, 409]
        conflict = next(r for r in responses if r.status_code == 409)
        assert conflict.json()["message"] == "User already exists with this email"
        assert await count_users(session_factory) == 1

    async def test__register__invalid_email(self, client: AsyncClient) -> None:
        """A malformed email is a 400 with a readable message."""
        response = await client.post(
            "/auth/register", json={**REGISTER_BODY, "email": "not-an-email"},
        )
        assert response.status_code == 400
        assert "valid email" in response.json()["message"]

    async def test__register__blank_password(self, client: AsyncClient) -> None:
        """A whitespace-only password is a 400."""
        response = await client.post(
            "/auth/register", json={**REGISTER_BODY, "password": "   "},
        )

        assert response.status_code == 400
        assert "Password cannot be empty" in response.json()["message"]

    async def test__register__password_whitespace_is_kept(self, client: AsyncClient) -> None:
        """Surrounding spaces are part of the password, not trimmed away."""
        await client.post("/auth/register", json={**REGISTER_BODY, "password": " pass word "})

        trimmed = await client.post(
            "/auth/login", json={"email": REGISTER_BODY["email"], "password": "pass word"},
        )
        exact = await client.post(
            "/auth/login", json={"email": REGISTER_BODY["email"], "password": " pass word "},
        )

        assert trimmed.status_code == 401
        assert exact.status_code == 200

    async def test__register__unknown_role(self, client: AsyncClient) -> None:
        """Roles outside admin/teacher/student are rejected."""
        response = await client.post(
            "/auth/register", json={**REGISTER_BODY, "role": "janitor"},
        )
        assert response.status_code == 400

    async def test__register__missing_fields(self, client: AsyncClient) -> None:
        """A body without a password is a 400."""
        response = await client.post(
            "/auth/register", json={"name": "A", "email": "a@campus.test"},
        )
        assert response.status_code == 400
        assert "password" in response.json()["message"]


class TestLogin:
    """Tests for POST /auth/login."""

    async def test__login__success(self, client: AsyncClient) -> None:
        """Correct credentials return the user, an access token and a cookie."""
        await client.post("/auth/register", json=REGISTER_BODY)

        response = await client.post(
            "/auth/login",
            json={"email": "Ada@Campus.Test", "password": "password123"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Login successful"
        assert data["user"]["email"] == "ada@campus.test"
        assert data["access_token"]
        assert refresh_token_from(response)

    async def test__login__wrong_password(self, client: AsyncClient) -> None:
        """A wrong password is a 401."""
        await client.post("/auth/register", json=REGISTER_BODY)

        response = await client.post(
            "/auth/login", json={"email": "ada@campus.test", "password": "nope"},
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    async def test__login__unknown_email(self, client: AsyncClient) -> None:
        """An unknown email is a 401 with the same message."""
        response = await client.post(
            "/auth/login", json={"email": "ghost@campus.test", "password": "password123"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    async def test__login__carries_rate_limit_headers(self, client: AsyncClient) -> None:
        """Login responses report the strict limiter's budget."""
        response = await client.post(
            "/auth/login", json={"email": "ghost@campus.test", "password": "password123"},
        )
        assert response.headers["X-RateLimit-Limit"] == "100"
        assert response.headers["X-RateLimit-Remaining"] == "99"


class TestRefresh:
    """Tests for POST /auth/refresh."""

    async def test__refresh__without_cookie(self, client: AsyncClient) -> None:
        """No cookie is a 401."""
        client.cookies.clear()
        response = await client.post("/auth/refresh")

        assert response.status_code == 401
        assert response.json()["message"] == "No refresh token found"

    async def test__refresh__unknown_token(self, client: AsyncClient) -> None:
        """A cookie matching no session is a 403."""
        use_refresh_cookie(client, "not-a-real-token")
        response = await client.post("/auth/refresh")

        assert response.status_code == 403
        assert response.json()["message"] == "Invalid refresh token"

    async def test__refresh__rotates_refresh_token(self, client: AsyncClient) -> None:
        """Refresh issues a new cookie and the previous token stops working."""
        registered = await client.post("/auth/register", json=REGISTER_BODY)
        original = refresh_token_from(registered)

        use_refresh_cookie(client, original)
        response = await client.post("/auth/refresh")

        assert response.status_code == 200
        assert response.json()["message"] == "Token refreshed"
        assert response.json()["user"]["id"] == registered.json()["user"]["id"]
        assert "Max-Age=604800" in response.headers["set-cookie"]
        rotated = refresh_token_from(response)
        assert rotated
        assert rotated != original

        use_refresh_cookie(client, original)
        replay = await client.post("/auth/refresh")
        assert replay.status_code == 403

        use_refresh_cookie(client, rotated)
        again = await client.post("/auth/refresh")
        assert again.status_code == 200

    async def test__refresh__new_access_token_authenticates(self, client: AsyncClient) -> None:
        """The access token from a refresh is accepted by protected routes."""
        registered = await client.post(
            "/auth/register", json={**REGISTER_BODY, "role": "teacher"},
        )
        use_refresh_cookie(client, refresh_token_from(registered))
        refreshed = await client.post("/auth/refresh")

        response = await client.get(
            "/attendance",
            headers={"Authorization": f"Bearer {refreshed.json()['access_token']}"},
        )
        assert response.status_code == 200


class TestLogout:
    """Tests for POST /auth/logout."""

    async def test__logout__without_cookie_is_no_content(self, client: AsyncClient) -> None:
        """Nothing to log out is a 204."""
        client.cookies.clear()
        response = await client.post("/auth/logout")

        assert response.status_code == 204
        assert response.content == b""

    async def test__logout__clears_cookie_and_session(self, client: AsyncClient) -> None:
        """Logout clears the cookie and the refresh token can no longer be used."""
        registered = await client.post("/auth/register", json=REGISTER_BODY)
        token = refresh_token_from(registered)

        use_refresh_cookie(client, token)
        response = await client.post("/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}
        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith('jwt=""') or set_cookie.startswith("jwt=;")
        assert "Max-Age=0" in set_cookie

        use_refresh_cookie(client, token)
        refresh = await client.post("/auth/refresh")
        assert refresh.status_code == 403
