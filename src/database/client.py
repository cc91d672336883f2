"""Database client and connection management with async SQLAlchemy."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from src.config.settings import settings
from src.database.base import Base

logger = logging.getLogger(__name__)

# Global SQLAlchemy engine
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get the SQLAlchemy async engine instance."""
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the SQLAlchemy async session factory."""
    if _async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _async_session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession]:
    """Get an async database session.

    The session commits when the block exits cleanly and rolls back if it
    raises, so a multi-step operation (e.g. refresh token rotation) either
    lands completely or not at all.

    Usage:
        async with get_session() as session:
            result = await session.execute(select(User))
            users = result.scalars().all()
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with pool options suited to the backend."""
    options: dict[str, Any] = {"echo": echo}

    if url.startswith("sqlite"):
        # SQLite serializes writers; wait for the lock instead of failing fast
        options["connect_args"] = {"timeout": 30}
    else:
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_recycle=settings.database_pool_recycle,
            pool_pre_ping=True,  # Verify connections before using
        )

    return create_async_engine(url, **options)


def register_models() -> None:
    """Import every model module so Base.metadata knows all tables."""
    from src.features.api_key import models as api_key_models  # noqa: F401
    from src.features.auth import models as auth_models  # noqa: F401
    from src.features.product import models as product_models  # noqa: F401
    from src.features.user import models as user_models  # noqa: F401


async def init_db() -> None:
    """Initialize the database connection and SQLAlchemy.

    This function:
    1. Creates the async engine
    2. Creates the session factory
    3. Verifies connection
    4. Creates missing tables when DATABASE_AUTO_CREATE is enabled
    """
    global _engine, _async_session_factory

    try:
        logger.info(f"Connecting to database at {make_url(settings.database_url).render_as_string()}")

        _engine = build_engine(settings.database_url, echo=settings.database_echo)

        _async_session_factory = async_sessionmaker(
            _engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with _engine.begin() as conn:
            await conn.execute(text("SELECT 1"))

            if settings.database_auto_create:
                register_models()
                await conn.run_sync(Base.metadata.create_all)
                logger.info("Database schema ensured")

        logger.info("Database initialization complete")

    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def close_db() -> None:
    """Close the database connection gracefully."""
    global _engine, _async_session_factory

    if _engine is not None:
        logger.info("Closing database connection")
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database connection closed")
