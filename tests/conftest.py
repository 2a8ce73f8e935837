"""Test configuration and fixtures."""
import os

# Must be set before the application settings are loaded
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from community_api.main import app
from community_api.core import tokens
from community_api.database import get_db
from community_api.models import Base, User, UserRole

TEST_DATABASE_URL = "sqlite+aiosqlite://"

USER_PASSWORD = "testpassword123"
ADMIN_PASSWORD = "adminpassword123"


@pytest_asyncio.fixture
async def async_engine():
    """In-memory database shared by every session of one test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(async_engine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def async_session(session_factory):
    """Create async session for tests."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client with a fresh database session per request."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


async def _create_user(session, email, password, full_name, role) -> User:
    user = User(
        email=email,
        password=password,
        full_name=full_name,
        role=role,
    )
    session.add(user)
    await session.commit()
    return user


@pytest_asyncio.fixture
async def test_user(async_session):
    """Create test user."""
    return await _create_user(async_session, "test@community.dev", USER_PASSWORD, "Test User", UserRole.USER)


@pytest_asyncio.fixture
async def mentor_user(async_session):
    """Create mentor user."""
    return await _create_user(async_session, "mentor@community.dev", USER_PASSWORD, "Mentor User", UserRole.MENTOR)


@pytest_asyncio.fixture
async def admin_user(async_session):
    """Create admin user."""
    return await _create_user(async_session, "admin@community.dev", ADMIN_PASSWORD, "Admin User", UserRole.ADMIN)


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {tokens.issue_access_token(user.id)}"}


@pytest.fixture
def make_headers():
    """Build bearer headers for any user."""
    return bearer


@pytest_asyncio.fixture
async def auth_headers(test_user):
    """Create authorization headers for test user."""
    return bearer(test_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user):
    """Create authorization headers for admin user."""
    return bearer(admin_user)
