"""Database connection and session management."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from crm.settings import get_async_database_url, settings

# Create async engine
engine = create_async_engine(
    get_async_database_url(),
    echo=settings.database_echo,
    future=True,
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for models
Base = declarative_base()


async def get_db() -> AsyncIterator[AsyncSession]:
    """Dependency for getting database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run a unit of work: commit on success, roll back on any error.

    Repositories only flush; every service operation that writes goes
    through this so that all of its rows land in a single commit.
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise
