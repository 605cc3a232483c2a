"""Pytest fixtures for testing."""
import os

# Settings are read when api.main is imported; a placeholder URL satisfies
# validation, each test then builds its own engine below.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ["APP_ENV"] = "test"

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest
from fakeredis import FakeAsyncRedis, FakeServer
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

import models  # noqa: F401 - registers every table on Base.metadata
from core.config import Settings, get_settings
from core.redis import RedisClient
from core.session_cache import SessionCache
from db.session import create_engine, create_session_factory
from models.base import Base
from models.user import Role, User
from services import token_service, user_service

get_settings.cache_clear()

TEST_PASSWORD = "password123"

MakeUser = Callable[..., Awaitable[User]]


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch: pytest.MonkeyPatch) -> None:
    """Use the cheapest bcrypt cost so password hashing does not dominate test time."""
    monkeypatch.setattr(user_service, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def settings() -> Settings:
    """Application settings as the app sees them."""
    return get_settings()


@pytest.fixture
async def async_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create a fresh SQLite database per test with every table created."""
    engine = create_engine(
        Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"),
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return create_session_factory(async_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """A session for calling services directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def redis_client() -> AsyncGenerator[RedisClient]:
    """Redis client backed by an isolated in-process fake server."""
    client = RedisClient(
        url="redis://fake",
        client=FakeAsyncRedis(server=FakeServer()),
    )
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
def session_cache(redis_client: RedisClient) -> SessionCache:
    """Session cache over the fake Redis."""
    return SessionCache(redis_client)


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    redis_client: RedisClient,
    session_cache: SessionCache,
) -> AsyncGenerator[AsyncClient]:
    """
    Create a test client wired to the test database and fake Redis.

    ASGITransport does not run the lifespan, so the state it would set up is
    assigned directly. App exceptions are not re-raised so the 500 handler's
    response can be asserted on.
    """
    from api.main import app

    app.state.session_factory = session_factory
    app.state.redis_client = redis_client
    app.state.session_cache = session_cache

    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as test_client:
        yield test_client


@pytest.fixture
def make_user(session_factory: async_sessionmaker[AsyncSession]) -> MakeUser:
    """Factory creating and committing a user with the given role."""
    counter = 0

    async def _make_user(
        role: Role = Role.STUDENT,
        name: str | None = None,
        email: str | None = None,
        password: str = TEST_PASSWORD,
    ) -> User:
        nonlocal counter
        counter += 1
        async with session_factory() as session:
            user = await user_service.create_user(
                session,
                name=name or f"{role.value.title()} {counter}",
                email=email or f"{role.value}{counter}@campus.test",
                password=password,
                role=role.value,
            )
            await session.commit()
        return user

    return _make_user


def auth_headers(user: User, settings: Settings) -> dict[str, str]:
    """Bearer header carrying a fresh access token for a user."""
    return {"Authorization": f"Bearer {token_service.issue_access_token(user, settings)}"}


@pytest.fixture
async def admin(make_user: MakeUser) -> User:
    """An admin user."""
    return await make_user(Role.ADMIN)


@pytest.fixture
async def teacher(make_user: MakeUser) -> User:
    """A teacher user."""
    return await make_user(Role.TEACHER)


@pytest.fixture
async def student(make_user: MakeUser) -> User:
    """A student user."""
    return await make_user(Role.STUDENT)


@pytest.fixture
def admin_headers(admin: User, settings: Settings) -> dict[str, str]:
    """Auth headers for the admin user."""
    return auth_headers(admin, settings)


@pytest.fixture
def teacher_headers(teacher: User, settings: Settings) -> dict[str, str]:
    """Auth headers for the teacher user."""
    return auth_headers(teacher, settings)


@pytest.fixture
def student_headers(student: User, settings: Settings) -> dict[str, str]:
    """Auth headers for the student user."""
    return auth_headers(student, settings)
