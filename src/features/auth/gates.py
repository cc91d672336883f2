"""Request authenticators.

A gate pairs a path matcher with a decision function that turns the
credential carried by a request into ``Ok(principal)`` or ``Reject(reason)``.
``GATES`` lists them in priority order; the first gate whose matcher accepts
the path decides. Gates never raise for a bad credential, so each one can be
exercised directly in tests without a running server.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from src.config.settings import settings
from src.database.base import utcnow
from src.features.api_key.models import ApiKey
from src.shared.errors.exceptions import ErrorKind

from .jwt_utils import verify_access_token
from .principal import ApiKeyPrincipal, GateResult, Ok, Reject

logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"


@dataclass(frozen=True)
class RequestCredentials:
    """The parts of a request the gates look at."""

    path: str
    headers: Mapping[str, str]

    @classmethod
    def from_request(cls, request: Request) -> "RequestCredentials":
        return cls(path=request.url.path, headers=request.headers)


def authenticate_bearer(authorization: str | None) -> GateResult:
    """Decide on an ``Authorization: Bearer <jwt>`` header value."""
    if not authorization:
        return Reject(ErrorKind.MISSING_CREDENTIAL, "no Authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != BEARER_SCHEME or not token.strip():
        return Reject(ErrorKind.INVALID_CREDENTIAL, "Authorization header is not a bearer token")

    return verify_access_token(token.strip())


async def authenticate_api_key(session: AsyncSession, presented: str | None, now: datetime | None = None) -> GateResult:
    """Decide on an API key header value.

    Only active keys are looked up, so an inactive key is rejected whatever
    its expiry. An expired key is rejected without touching the record. On
    success ``last_used_at`` is updated and committed; a failing update is
    logged and rolled back but does not reject the request.
    """
    if not presented:
        return Reject(ErrorKind.MISSING_CREDENTIAL, "no API key header")

    now = now or utcnow()
    stmt = select(ApiKey).where(ApiKey.key == presented, ApiKey.is_active.is_(True))
    result = await session.execute(stmt)
    api_key = result.scalar_one_or_none()

    if api_key is None:
        return Reject(ErrorKind.INVALID_CREDENTIAL, "unknown or inactive API key")

    if api_key.is_expired(now):
        return Reject(ErrorKind.EXPIRED, f"API key {api_key.id} expired at {api_key.expires_at.isoformat()}")

    principal = ApiKeyPrincipal(
        key_id=api_key.id,
        name=api_key.name,
        owner=api_key.owner,
        scopes=tuple(api_key.scopes or ()),
    )

    try:
        api_key.last_used_at = now
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.warning(f"Failed to record API key usage for key {principal.key_id}: {exc}")

    return Ok(principal)


def _normalize_prefix(prefix: str) -> str:
    return "/" + prefix.strip("/").lower()


def matches_api_key_path(path: str, prefixes: list[str] | None = None) -> bool:
    """Case-insensitive, segment-aware prefix match (``/api/partner`` does not claim ``/api/partners``)."""
    lowered = path.lower()
    for prefix in prefixes if prefixes is not None else settings.api_key_path_prefixes:
        normalized = _normalize_prefix(prefix)
        if lowered == normalized or lowered.startswith(normalized + "/"):
            return True
    return False


async def _api_key_gate(credentials: RequestCredentials, session: AsyncSession) -> GateResult:
    return await authenticate_api_key(session, credentials.headers.get(settings.api_key_header))


async def _bearer_gate(credentials: RequestCredentials, session: AsyncSession) -> GateResult:
    return authenticate_bearer(credentials.headers.get("authorization"))


@dataclass(frozen=True)
class Gate:
    """One authentication scheme in the pipeline.

    ``enforce`` gates end the request with 401 on rejection. Non-enforcing
    gates only record the outcome, leaving the decision to route policies so
    anonymous routes keep working.
    """

    name: str
    matches: Callable[[str], bool]
    authenticate: Callable[[RequestCredentials, AsyncSession], Awaitable[GateResult]]
    enforce: bool


API_KEY_GATE = Gate(name="api_key", matches=matches_api_key_path, authenticate=_api_key_gate, enforce=True)
BEARER_GATE = Gate(name="bearer", matches=lambda path: True, authenticate=_bearer_gate, enforce=False)

GATES: tuple[Gate, ...] = (API_KEY_GATE, BEARER_GATE)


async def run_gates(
    credentials: RequestCredentials,
    session: AsyncSession,
    gates: tuple[Gate, ...] = GATES,
) -> tuple[Gate, GateResult] | None:
    """Run the first gate that claims the request path."""
    for gate in gates:
        if gate.matches(credentials.path):
            return gate, await gate.authenticate(credentials, session)
    return None
