"""API key management (creation and deactivation)."""

import base64
import logging
import secrets
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.shared.errors.exceptions import AppError, ErrorKind

from .models import ApiKey

logger = logging.getLogger(__name__)

MIN_KEY_LENGTH = 32


class ApiKeyTooShort(AppError):
    kind = ErrorKind.VALIDATION

    def __init__(self):
        message = f"API key must be at least {MIN_KEY_LENGTH} characters"
        super().__init__(detail=message, public_message=message)


def generate_key(prefix: str) -> str:
    """Build a random key such as ``sk_live_<base64 of 32 random bytes>``."""
    return prefix + base64.b64encode(secrets.token_bytes(32)).decode("ascii")


class ApiKeyService:
    """Service for API key records."""

    @staticmethod
    async def create_api_key(
        session: AsyncSession,
        key: str,
        name: str,
        owner: str,
        scopes: list[str] | None = None,
        expires_at: datetime | None = None,
    ) -> ApiKey:
        """Store a new active API key.

        Raises:
            ApiKeyTooShort: If the key is shorter than 32 characters

        """
        if len(key) < MIN_KEY_LENGTH:
            raise ApiKeyTooShort()

        api_key = ApiKey(
            key=key,
            name=name,
            owner=owner,
            scopes=list(scopes or []),
            expires_at=expires_at,
            is_active=True,
        )
        session.add(api_key)
        await session.flush()
        logger.info(f"API key created: {name} (owner={owner})")
        return api_key

    @staticmethod
    async def get_api_key_by_owner(session: AsyncSession, owner: str) -> ApiKey | None:
        stmt = select(ApiKey).where(ApiKey.owner == owner).order_by(ApiKey.id)
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def deactivate_api_key(session: AsyncSession, key: str) -> bool:
        """Deactivate a key by value. Returns False when no such key exists."""
        result = await session.execute(select(ApiKey).where(ApiKey.key == key))
        api_key = result.scalar_one_or_none()
        if api_key is None:
            return False

        api_key.is_active = False
        logger.info(f"API key deactivated: {api_key.name} (owner={api_key.owner})")
        return True
