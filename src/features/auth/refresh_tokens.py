"""Refresh token storage, rotation and revocation."""

import base64
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.database.base import utcnow
from src.features.user.models import User

from .exceptions import CredentialExpiredError, CredentialRevokedError, InvalidCredentialsError
from .jwt_utils import create_access_token
from .models import RefreshToken
from .schemas import TokenResponse

logger = logging.getLogger(__name__)

REFRESH_TOKEN_BYTES = 64


@dataclass(frozen=True)
class GeneratedRefreshToken:
    """A freshly minted refresh token that has not been stored yet."""

    token: str
    expires_at: datetime
    created_by_ip: str | None = None


def _claim_active_token(token: str, now: datetime):
    """Compare-and-set revoke: matches only while the row is still active."""
    return (
        update(RefreshToken)
        .where(
            RefreshToken.token == token,
            RefreshToken.revoked_at.is_(None),
            RefreshToken.expires_at > now,
        )
        .values(revoked_at=now)
        .execution_options(synchronize_session=False)
    )


class RefreshTokenStore:
    """Issues and exchanges opaque refresh tokens.

    All methods run inside the caller's transaction; the caller commits.
    """

    @staticmethod
    def generate(ip_address: str | None = None) -> GeneratedRefreshToken:
        raw = secrets.token_bytes(REFRESH_TOKEN_BYTES)
        return GeneratedRefreshToken(
            token=base64.b64encode(raw).decode("ascii"),
            expires_at=utcnow() + timedelta(days=settings.refresh_token_expire_days),
            created_by_ip=ip_address,
        )

    @staticmethod
    async def issue_and_persist(session: AsyncSession, user_id: int, ip_address: str | None = None) -> RefreshToken:
        """Generate a refresh token for a user and add it to the session."""
        generated = RefreshTokenStore.generate(ip_address)
        refresh_token = RefreshToken(
            token=generated.token,
            user_id=user_id,
            expires_at=generated.expires_at,
            created_by_ip=generated.created_by_ip,
        )
        session.add(refresh_token)
        await session.flush()
        return refresh_token

    @staticmethod
    async def issue_token_pair(session: AsyncSession, user: User, ip_address: str | None = None) -> TokenResponse:
        """Mint an access token and a stored refresh token for a user."""
        refresh_token = await RefreshTokenStore.issue_and_persist(session, user.id, ip_address)
        access_token = create_access_token(user.id, user.email, user.role)
        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token.token,
            expires_in=settings.access_token_expire_seconds,
        )

    @staticmethod
    async def rotate(session: AsyncSession, presented: str, ip_address: str | None = None) -> TokenResponse:
        """Exchange an active refresh token for a new token pair.

        The presented token is revoked with a conditional UPDATE issued as the
        first statement of the transaction, so of two concurrent rotations of
        the same token exactly one affects a row. The user is re-read so the
        new access token carries the current role and email.

        If anything fails after the claim, the caller's rollback restores the
        presented token, so a failed rotation never consumes it.

        Raises:
            InvalidCredentialsError: If the token is unknown or its user no longer exists
            CredentialRevokedError: If the token was already used or revoked
            CredentialExpiredError: If the token has expired

        """
        now = utcnow()
        result = await session.execute(_claim_active_token(presented, now))
        if result.rowcount != 1:
            raise await RefreshTokenStore._rejection(session, presented)

        user_id = await session.scalar(select(RefreshToken.user_id).where(RefreshToken.token == presented))
        user = await session.get(User, user_id, populate_existing=True) if user_id is not None else None
        if user is None:
            raise InvalidCredentialsError(detail="refresh token owner no longer exists")

        tokens = await RefreshTokenStore.issue_token_pair(session, user, ip_address)
        logger.info(f"Refresh token rotated for user {user.id}")
        return tokens

    @staticmethod
    async def _rejection(session: AsyncSession, presented: str) -> InvalidCredentialsError:
        """Error for a token the claim did not match. All of them share one public message."""
        row = (
            await session.execute(
                select(RefreshToken.id, RefreshToken.revoked_at).where(RefreshToken.token == presented)
            )
        ).one_or_none()
        if row is None:
            return InvalidCredentialsError(detail="refresh token unknown")
        if row.revoked_at is not None:
            logger.warning(f"Revoked refresh token {row.id} presented again")
            return CredentialRevokedError(detail=f"refresh token {row.id} already revoked")
        return CredentialExpiredError(detail=f"refresh token {row.id} expired")

    @staticmethod
    async def revoke(session: AsyncSession, token: str) -> bool:
        """Revoke a refresh token if it is still active.

        Unknown, already revoked and expired tokens are a silent no-op.
        Returns whether a row was revoked.
        """
        result = await session.execute(_claim_active_token(token, utcnow()))
        return result.rowcount == 1
