"""
PropDesk Backend — Database Session Management
================================================

What:  Async SQLAlchemy engine factory, session factory, and FastAPI dependency.
Why:   Centralizes all record-store connection logic in one place.
How:   The lifespan handler calls create_engine() once at startup and keeps the
       engine and session factory on app.state; get_db_session() hands each
       request its own session, committing on success and rolling back on error.
Who:   Used by route dependencies and the health check.
"""

from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from propdesk.config import settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models (shared metadata for Alembic)."""
    pass


def create_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create the async engine that owns the connection pool.

    pool_pre_ping validates connections before use (catches stale connections
    after a database restart); pool_recycle drops connections older than an hour.
    """
    return create_async_engine(
        database_url or settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
        echo=settings.log_level == "DEBUG",
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: ORM objects stay readable after the request commits
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Opens a session from the factory stored on app.state
        2. Yields it to the route (services run their statements on it)
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the global error handler
        5. Always: closes the session (returns the connection to the pool)
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine(engine: AsyncEngine) -> None:
    """Gracefully closes all connections in the pool (called on shutdown)."""
    await engine.dispose()
