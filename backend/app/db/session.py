"""
Database session management.

WHY: Async database sessions are required for FastAPI's async/await pattern.
Using a context manager ensures proper connection cleanup and transaction management.
"""

from typing import Any, AsyncGenerator, Dict
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.core.config import settings


def engine_options(url: str) -> Dict[str, Any]:
    """
    Engine keyword arguments for a database URL.

    WHY: pool_pre_ping recycles stale server connections; pool sizing only
    applies to server databases, SQLite (local runs and tests) rejects it.
    """
    options: Dict[str, Any] = {"echo": settings.DEBUG}
    if not url.startswith("sqlite"):
        options.update(pool_pre_ping=True, pool_size=10, max_overflow=20)
    return options


engine = create_async_engine(
    settings.async_database_url,
    **engine_options(settings.async_database_url),
)

# expire_on_commit=False keeps returned rows readable after the request commits
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.

    WHY: Each request gets its own session and unit of work. Commit on
    success; any exception (including a failed timesheet saga whose
    compensation could not run) rolls the whole request back.

    Yields:
        AsyncSession: Database session for the request
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
