"""Database dependencies."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from src.database.client import get_session


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """Get a database session scoped to the current request.

    FastAPI caches the dependency per request, so the authentication gates
    and the route handler share one session.
    """
    async with get_session() as session:
        yield session
