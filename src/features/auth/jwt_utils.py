"""JWT utilities for access tokens."""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from src.config.settings import settings
from src.shared.errors.exceptions import ErrorKind

from .principal import GateResult, Ok, Principal, Reject

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REQUIRED_CLAIMS = ["exp", "iat", "sub", "jti", "iss", "aud"]


def create_access_token(
    user_id: int,
    email: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT access token.

    Args:
        user_id: Subject of the token
        email: User email, embedded as a claim
        role: User role, embedded as a claim
        expires_delta: Optional lifetime override (defaults to ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded JWT token string

    """
    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))

    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "jti": uuid4().hex,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": expire,
        "type": ACCESS_TOKEN_TYPE,
    }

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """Decode and verify a JWT token.

    Checks signature, issuer, audience and expiry (with clock-skew leeway).

    Raises:
        InvalidTokenError: If token is invalid or expired

    """
    return jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
        leeway=settings.clock_skew_seconds,
        options={"require": REQUIRED_CLAIMS},
    )


def verify_access_token(token: str) -> GateResult:
    """Verify an access token and build the principal it carries.

    Every failure maps to a ``Reject``; which check failed is kept in
    ``Reject.detail`` for logging.
    """
    try:
        payload = decode_token(token)
    except ExpiredSignatureError:
        return Reject(ErrorKind.EXPIRED, "access token expired")
    except InvalidTokenError as exc:
        return Reject(ErrorKind.INVALID_CREDENTIAL, f"access token rejected: {type(exc).__name__}")

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        return Reject(ErrorKind.INVALID_CREDENTIAL, "wrong token type")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        return Reject(ErrorKind.INVALID_CREDENTIAL, "non-numeric subject")

    email = payload.get("email")
    role = payload.get("role")
    if not isinstance(email, str) or not isinstance(role, str):
        return Reject(ErrorKind.INVALID_CREDENTIAL, "missing identity claims")

    return Ok(Principal(user_id=user_id, email=email, role=role, jti=str(payload["jti"])))
