"""
Pytest configuration and fixtures for backend tests.
"""

import pytest
import httpx
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from searchbridge.api.deps import get_engine_client
from searchbridge.core.config import EngineConnection, settings
from searchbridge.core.database import Base, get_db
from searchbridge.core.rate_limit import limiter
from searchbridge.services.engine_client import EngineClient

from fake_engine import FakeEngine


# Test database URL (in-memory SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_CONNECTION = EngineConnection(
    protocol="http",
    host="engine.test",
    port=8108,
    api_key="test-key",
    collection_prefix="",
    timeout=5.0,
)


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on a fresh in-memory database."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await test_engine.dispose()


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine(api_key=TEST_CONNECTION.api_key)


@pytest.fixture
async def engine_client(fake_engine: FakeEngine) -> AsyncGenerator[EngineClient, None]:
    """Engine client wired to the in-memory engine."""
    async with httpx.AsyncClient(transport=fake_engine.transport()) as http_client:
        yield EngineClient(TEST_CONNECTION, client=http_client)


@pytest.fixture
async def client(db_session: AsyncSession, engine_client: EngineClient) -> AsyncGenerator[httpx.AsyncClient, None]:
    """API client driving the FastAPI app in-process."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_engine_client] = lambda: engine_client
    limiter.enabled = False

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client

    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Key": settings.ADMIN_API_KEY}
