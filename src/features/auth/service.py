"""Authentication service layer."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow
from src.features.user.exceptions import EmailAlreadyExists
from src.features.user.models import User, UserRole, normalize_email

from .exceptions import LoginFailedError
from .password import burn_verification
from .refresh_tokens import RefreshTokenStore
from .schemas import RegisterRequest, TokenResponse

logger = logging.getLogger(__name__)


class AuthService:
    """Service for registration, login and token exchange."""

    @staticmethod
    async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
        stmt = select(User).where(User.email == normalize_email(email))
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def register(session: AsyncSession, data: RegisterRequest, ip_address: str | None = None) -> TokenResponse:
        """Create a user account and sign it in.

        Args:
            session: Database session
            data: Validated registration payload
            ip_address: Requester's IP address (optional)

        Returns:
            TokenResponse for the new account

        Raises:
            EmailAlreadyExists: If the normalized email is taken

        """
        email = normalize_email(str(data.email))

        # Fast path; the unique constraint below is what actually guarantees uniqueness
        if await AuthService.get_user_by_email(session, email):
            raise EmailAlreadyExists(email)

        user = User(
            email=email,
            full_name=data.full_name,
            birth_date=data.birth_date,
            hashed_password=User.hash_password(data.password),
            role=UserRole.USER.value,
        )
        session.add(user)
        try:
            await session.flush()
        except IntegrityError as err:
            await session.rollback()
            raise EmailAlreadyExists(email) from err

        tokens = await RefreshTokenStore.issue_token_pair(session, user, ip_address)
        logger.info(f"User registered: {user.id}")
        return tokens

    @staticmethod
    async def authenticate_user(session: AsyncSession, email: str, password: str) -> User | None:
        """Check an email and password pair.

        Returns:
            User object if authentication successful, None otherwise

        """
        user = await AuthService.get_user_by_email(session, email)

        if user is None:
            burn_verification(password)
            return None

        if not user.verify_password(password):
            return None

        return user

    @staticmethod
    async def login(
        session: AsyncSession, email: str, password: str, ip_address: str | None = None
    ) -> TokenResponse:
        """Authenticate and issue a token pair.

        Raises:
            LoginFailedError: Same error for unknown email and wrong password

        """
        user = await AuthService.authenticate_user(session, email, password)
        if user is None:
            raise LoginFailedError(detail="unknown email or wrong password")

        user.last_login_at = utcnow()
        tokens = await RefreshTokenStore.issue_token_pair(session, user, ip_address)
        logger.info(f"User logged in: {user.id}")
        return tokens

    @staticmethod
    async def refresh(session: AsyncSession, refresh_token: str, ip_address: str | None = None) -> TokenResponse:
        """Rotate a refresh token into a new token pair."""
        return await RefreshTokenStore.rotate(session, refresh_token, ip_address)

    @staticmethod
    async def logout(session: AsyncSession, refresh_token: str) -> None:
        """Revoke a refresh token. Calling it again with the same token is a no-op."""
        revoked = await RefreshTokenStore.revoke(session, refresh_token)
        if revoked:
            logger.info("Refresh token revoked on logout")
