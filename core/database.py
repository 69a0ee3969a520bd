"""
Database session management with SQLAlchemy async
"""

from functools import lru_cache
from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)

# Driver connect failures (refused, unreachable host) surface as OSError,
# not wrapped by SQLAlchemy
DATABASE_ERRORS = (SQLAlchemyError, OSError)


def build_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Create an async engine for the given URL (defaults to settings)"""
    url = database_url or settings.DATABASE_URL
    return create_async_engine(
        url,
        echo=False,
        poolclass=NullPool,  # Connections are short-lived, one per record write
        future=True
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create a session factory bound to an engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


@lru_cache
def get_engine() -> AsyncEngine:
    """Process-wide engine, created on first use"""
    logger.info("Creating database engine")
    return build_engine()


@lru_cache
def get_session_factory() -> async_sessionmaker:
    """Process-wide session factory, created on first use"""
    return build_session_factory(get_engine())


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session"""
    async with get_session_factory()() as session:
        yield session
