"""Authenticated identities and gate decisions.

Gates and the token verifier never raise for a bad credential; they return
``Ok(principal)`` or ``Reject(reason)``. Only the HTTP seam turns a
``Reject`` into an error response.
"""

from dataclasses import dataclass, field

from src.shared.errors.exceptions import ErrorKind


@dataclass(frozen=True, slots=True)
class Principal:
    """User identity carried by a verified access token."""

    user_id: int
    email: str
    role: str
    jti: str


@dataclass(frozen=True, slots=True)
class ApiKeyPrincipal:
    """Service identity resolved from an API key."""

    key_id: int
    name: str
    owner: str
    scopes: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Ok:
    principal: Principal | ApiKeyPrincipal


@dataclass(frozen=True, slots=True)
class Reject:
    reason: ErrorKind
    # Server-side explanation for logs; never sent to the client
    detail: str = field(default="", compare=False)


GateResult = Ok | Reject
