"""Test configuration and fixtures.

Each test gets its own SQLite database file:
1. The schema is created fresh for every test, so tests never share rows
2. Requests handled by the app get their own sessions from the same factory,
   exactly like production (commit on success, rollback on error)
3. Factory fixtures commit, so rows they create are visible to the app
"""

from collections.abc import AsyncGenerator
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

# Load test environment variables before the settings singleton is created
test_env_path = Path(__file__).parent.parent / ".env.test"
load_dotenv(test_env_path, override=True)

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402

from src.database.base import Base  # noqa: E402
from src.database.client import build_engine, register_models  # noqa: E402
from src.database.dependencies import get_db_session  # noqa: E402
from src.features.api_key.models import ApiKey  # noqa: E402
from src.features.auth.jwt_utils import create_access_token  # noqa: E402
from src.features.user.models import User, UserRole  # noqa: E402
from src.main import app  # noqa: E402

DEFAULT_PASSWORD = "TestPass123!"


# Database Setup - Function Scope (One File Per Test)


@pytest_asyncio.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create an engine on a throwaway SQLite file with the full schema."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    register_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """Session for test setup and assertions.

    Rows changed by the app are not refreshed automatically; use
    ``await session.refresh(obj)`` before asserting on them.
    """
    async with session_factory() as async_session:
        yield async_session


# FastAPI Client & Dependency Overrides


@pytest_asyncio.fixture(autouse=True)
async def override_get_db_session(session_factory: async_sessionmaker[AsyncSession]):
    """Point the app's session dependency at the per-test database."""

    async def _get_test_session():
        async with session_factory() as async_session:
            try:
                yield async_session
                await async_session.commit()
            except Exception:
                await async_session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _get_test_session
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient]:
    """Create an unauthenticated async HTTP test client.

    Use auth_client or admin_client for authenticated requests.
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Test Data Factories


@pytest_asyncio.fixture
async def make_user(session: AsyncSession):
    """Factory fixture to create committed test users.

    Usage:
        user = await make_user()                              # defaults
        admin = await make_user(role=UserRole.ADMIN)          # admin
        minor = await make_user(birth_date=date(2015, 1, 1))  # under 18
    """
    counter = 0  # Counter for unique email generation

    async def _factory(
        email=None,
        full_name="Test User",
        password=DEFAULT_PASSWORD,
        role=UserRole.USER,
        birth_date=date(1990, 1, 1),
        **kwargs,
    ) -> User:
        nonlocal counter
        counter += 1

        if email is None:
            email = f"testuser{counter}@example.com"

        user = User(
            email=email,
            full_name=full_name,
            hashed_password=User.hash_password(password),
            role=role.value,
            birth_date=birth_date,
            **kwargs,
        )

        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    yield _factory


@pytest_asyncio.fixture
async def make_api_key(session: AsyncSession):
    """Factory fixture to create committed API keys (any length, any state).

    Usage:
        key = await make_api_key()                                # active, never expires
        key = await make_api_key(key="k1", is_active=False)       # inactive
        key = await make_api_key(expires_at=utcnow() - timedelta(days=1))  # expired
    """
    counter = 0

    async def _factory(key=None, name="Test Key", owner="test_partner", scopes=None, **kwargs) -> ApiKey:
        nonlocal counter
        counter += 1

        if key is None:
            key = f"test_key_{counter:02d}_" + "x" * 32

        api_key = ApiKey(key=key, name=name, owner=owner, scopes=scopes or ["webhooks"], **kwargs)
        session.add(api_key)
        await session.commit()
        await session.refresh(api_key)
        return api_key

    yield _factory


def bearer_headers(user: User) -> dict[str, str]:
    """Authorization header carrying a real access token for ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email, user.role)}"}


@pytest_asyncio.fixture
async def auth_headers():
    """Build bearer headers for any user: ``headers = auth_headers(user)``."""
    return bearer_headers


@pytest_asyncio.fixture
async def auth_client(client: AsyncClient, make_user):
    """Authenticated client with a regular user.

    Returns:
        tuple: (client, user) - both the HTTP client and the authenticated user

    """
    user = await make_user()
    client.headers.update(bearer_headers(user))
    yield client, user


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, make_user):
    """Authenticated client with an admin user.

    Returns:
        tuple: (client, user) - both the HTTP client and the admin user

    """
    user = await make_user(role=UserRole.ADMIN, email="admin@example.com")
    client.headers.update(bearer_headers(user))
    yield client, user
