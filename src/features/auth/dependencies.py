"""Authentication and authorization dependencies for FastAPI."""

import logging

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.dependencies import get_db_session

from .exceptions import ForbiddenError, MissingCredentialError, error_for_reject
from .gates import RequestCredentials, run_gates
from .policies import PolicyDecision, PolicyName, SqlUserAgeLookup, build_policy, evaluate_policy
from .principal import ApiKeyPrincipal, GateResult, Ok, Principal, Reject

logger = logging.getLogger(__name__)


async def authenticate_request(request: Request, session: AsyncSession = Depends(get_db_session)) -> None:
    """App-level dependency running the gate pipeline for every request.

    The outcome is stored on ``request.state.auth``. An enforcing gate (API
    key paths) ends the request here when it rejects.
    """
    outcome = await run_gates(RequestCredentials.from_request(request), session)
    if outcome is None:
        request.state.auth = None
        return

    gate, result = outcome
    request.state.auth = result

    if isinstance(result, Reject) and gate.enforce:
        raise error_for_reject(result)


def _auth_result(request: Request) -> GateResult | None:
    return getattr(request.state, "auth", None)


async def get_current_principal(request: Request) -> Principal:
    """Current user from the bearer token.

    Raises:
        MissingCredentialError: If no credential was sent
        InvalidCredentialsError: If the token is invalid (or a subclass for expired)

    """
    result = _auth_result(request)
    if isinstance(result, Ok) and isinstance(result.principal, Principal):
        return result.principal
    if isinstance(result, Reject):
        raise error_for_reject(result)
    raise MissingCredentialError(detail="route requires a user principal")


async def get_api_key_principal(request: Request) -> ApiKeyPrincipal:
    """Service identity resolved by the API-key gate."""
    result = _auth_result(request)
    if isinstance(result, Ok) and isinstance(result.principal, ApiKeyPrincipal):
        return result.principal
    if isinstance(result, Reject):
        raise error_for_reject(result)
    raise MissingCredentialError(detail="route requires an API key")


def require_policy(name: PolicyName):
    """Dependency factory enforcing a named policy.

    Unauthenticated callers get 401, authenticated callers the policy denies get 403.

    Usage:
        Depends(require_policy(PolicyName.MUST_BE_OVER_18))
    """

    async def policy_checker(
        principal: Principal = Depends(get_current_principal),
        session: AsyncSession = Depends(get_db_session),
    ) -> Principal:
        policy = build_policy(name, SqlUserAgeLookup(session))
        if await evaluate_policy(policy, principal) is not PolicyDecision.ALLOW:
            raise ForbiddenError(detail=f"policy {policy.name} denied user {principal.user_id}")
        return principal

    return policy_checker
