"""Application error taxonomy.

Domain code raises ``AppError`` subclasses. The HTTP layer (see
``handlers.py``) maps each ``ErrorKind`` to a fixed status code and public
message; ``detail`` stays server-side and only reaches the logs.
"""

from enum import StrEnum

from fastapi import status


class ErrorKind(StrEnum):
    """Error kinds recognised by the HTTP layer."""

    MISSING_CREDENTIAL = "missing_credential"
    INVALID_CREDENTIAL = "invalid_credential"
    EXPIRED = "expired"
    REVOKED = "revoked"
    DUPLICATE = "duplicate"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.MISSING_CREDENTIAL: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_CREDENTIAL: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.EXPIRED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.REVOKED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.DUPLICATE: status.HTTP_409_CONFLICT,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
}

# Invalid, expired and revoked credentials share one message so responses
# cannot reveal token or account state.
_REJECTED_CREDENTIAL_MESSAGE = "Invalid or expired credentials"

PUBLIC_MESSAGE_BY_KIND: dict[ErrorKind, str] = {
    ErrorKind.MISSING_CREDENTIAL: "Authentication required",
    ErrorKind.INVALID_CREDENTIAL: _REJECTED_CREDENTIAL_MESSAGE,
    ErrorKind.EXPIRED: _REJECTED_CREDENTIAL_MESSAGE,
    ErrorKind.REVOKED: _REJECTED_CREDENTIAL_MESSAGE,
    ErrorKind.DUPLICATE: "Resource already exists",
    ErrorKind.FORBIDDEN: "Insufficient permissions",
    ErrorKind.NOT_FOUND: "Resource not found",
    ErrorKind.VALIDATION: "Validation failed",
}


class AppError(Exception):
    """Base application error."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, detail: str | None = None, public_message: str | None = None):
        self.detail = detail or PUBLIC_MESSAGE_BY_KIND[self.kind]
        self._public_message = public_message
        super().__init__(self.detail)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    @property
    def public_message(self) -> str:
        return self._public_message or PUBLIC_MESSAGE_BY_KIND[self.kind]
