"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.
"""

from datetime import date, datetime
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.deps import get_clock, get_timer_registry
from app.db.session import get_db
from app.main import app
from app.models.base import Base
from app.services.timer import TimerRegistry

from tests.fakes import FakeClock, InMemoryStore


# Test database URL
# WHY: Using SQLite for tests eliminates external database dependencies
# and makes tests faster. StaticPool keeps the single in-memory database
# alive across the connections of one test.
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# A Wednesday; the week under test starts Monday 2026-03-09.
FROZEN_NOW = datetime(2026, 3, 11, 12, 0, 0)
WEEK_START = date(2026, 3, 9)


@pytest.fixture
def clock() -> FakeClock:
    """
    Frozen clock shared by timers, validator and store in a test.

    WHY: Elapsed time and "not in the future" checks become deterministic.
    """
    return FakeClock(FROZEN_NOW)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create a test database engine.

    WHY: Function scope ensures each test gets a fresh database state,
    preventing test pollution and ensuring test isolation.
    """
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session.

    Yields:
        AsyncSession: Database session for the test
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def timer_registry(clock: FakeClock) -> TimerRegistry:
    """Per-test timer registry on the frozen clock."""
    return TimerRegistry(clock=clock)


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, clock: FakeClock, timer_registry: TimerRegistry
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test HTTP client.

    WHY: AsyncClient allows testing FastAPI endpoints without running
    a real server. The session override mirrors get_db: roll back when
    the request fails, so a rejected request leaves nothing behind. Each
    test gets its own timer registry on the frozen clock.

    Yields:
        AsyncClient: HTTP client for making test requests
    """

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_timer_registry] = lambda: timer_registry

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_org(db_session: AsyncSession):
    """
    Create a test organization.

    WHY: Every row is org-scoped. Organizations without a subscription
    row are on the free plan.
    """
    from tests.factories import OrganizationFactory

    return await OrganizationFactory.create(db_session)


@pytest.fixture
def auth_headers(test_org) -> dict:
    """Request context headers for user 1 of the test organization."""
    return {"X-Organization-Id": str(test_org.id), "X-User-Id": "1"}
