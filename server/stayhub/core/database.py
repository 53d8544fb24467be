"""Database configuration and async session management."""

from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from .config import settings


engine = create_async_engine(
    settings.database_url,
    echo=False,
    future=True,
    pool_pre_ping=True,
    # StaticPool keeps a single shared connection for SQLite in-memory databases
    poolclass=StaticPool if settings.is_sqlite else None,
    connect_args={"check_same_thread": False} if settings.is_sqlite else {},
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function that yields database sessions.

    Yields:
        AsyncSession: Database session
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def is_postgresql(session: AsyncSession) -> bool:
    """Return True when the session is bound to a PostgreSQL database."""
    bind = session.bind
    return bind is not None and bind.dialect.name == "postgresql"


async def acquire_xact_lock(session: AsyncSession, key: str) -> None:
    """
    Take a transaction-scoped advisory lock keyed by ``key``.

    The lock is released automatically when the surrounding transaction ends.
    Other dialects rely on their own constraints and this is a no-op there.
    """
    if is_postgresql(session):
        await session.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
            {"key": key}
        )


async def check_database(session: AsyncSession) -> bool:
    """Run a trivial query to confirm the database is reachable."""
    await session.execute(text("SELECT 1"))
    return True


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
