"""Authentication router (registration and JWT token management endpoints)."""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.database.dependencies import get_db_session
from src.shared.rate_limit import limiter

from .schemas import LoginRequest, LogoutRequest, MessageResponse, RefreshTokenRequest, RegisterRequest, TokenResponse
from .service import AuthService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_auth)
async def register(request: Request, data: RegisterRequest, session: AsyncSession = Depends(get_db_session)):
    """Register a new account and get JWT tokens.

    - **email**: Email address (unique, case-insensitive)
    - **password**: 8-100 characters with uppercase, lowercase, digit and one of @$!%*?&
    - **full_name**: 2-100 characters
    - **birth_date**: In the past, at most 120 years ago

    New accounts get the User role.
    """
    tokens = await AuthService.register(session, data, _client_ip(request))
    await session.commit()
    return tokens


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.rate_limit_auth)
async def login(request: Request, data: LoginRequest, session: AsyncSession = Depends(get_db_session)):
    """Login and get JWT tokens.

    Returns access_token and refresh_token.
    """
    tokens = await AuthService.login(session, str(data.email), data.password, _client_ip(request))
    await session.commit()
    return tokens


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(request: Request, data: RefreshTokenRequest, session: AsyncSession = Depends(get_db_session)):
    """Exchange a refresh token for a new token pair.

    - **refresh_token**: Valid refresh token (single use)
    """
    tokens = await AuthService.refresh(session, data.refresh_token, _client_ip(request))
    await session.commit()
    return tokens


@router.post("/logout", response_model=MessageResponse)
async def logout(data: LogoutRequest, session: AsyncSession = Depends(get_db_session)):
    """Logout and revoke a refresh token.

    Always succeeds with the same body, whether or not the token existed.
    """
    await AuthService.logout(session, data.refresh_token)
    await session.commit()
    return MessageResponse(message="Logged out successfully")
