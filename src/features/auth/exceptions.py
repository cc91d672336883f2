"""Authentication exceptions."""

from src.shared.errors.exceptions import AppError, ErrorKind

from .principal import Reject


class AuthenticationError(AppError):
    """Base authentication error (HTTP 401)."""

    kind = ErrorKind.INVALID_CREDENTIAL


class MissingCredentialError(AuthenticationError):
    """Raised when a protected route is called without any credential."""

    kind = ErrorKind.MISSING_CREDENTIAL


class InvalidCredentialsError(AuthenticationError):
    """Raised when a password, token or API key does not check out."""

    kind = ErrorKind.INVALID_CREDENTIAL


class CredentialExpiredError(InvalidCredentialsError):
    """Raised for a token or key past its expiry."""

    kind = ErrorKind.EXPIRED


class CredentialRevokedError(InvalidCredentialsError):
    """Raised when a refresh token that was already used or revoked comes back."""

    kind = ErrorKind.REVOKED


class ForbiddenError(AppError):
    """Raised when an authenticated caller fails an authorization policy."""

    kind = ErrorKind.FORBIDDEN


class LoginFailedError(InvalidCredentialsError):
    """Raised for any failed login; unknown email and wrong password look the same."""

    def __init__(self, detail: str | None = None):
        super().__init__(detail=detail, public_message="Invalid email or password")


_ERROR_BY_KIND: dict[ErrorKind, type[AppError]] = {
    ErrorKind.MISSING_CREDENTIAL: MissingCredentialError,
    ErrorKind.INVALID_CREDENTIAL: InvalidCredentialsError,
    ErrorKind.EXPIRED: CredentialExpiredError,
    ErrorKind.REVOKED: CredentialRevokedError,
    ErrorKind.FORBIDDEN: ForbiddenError,
}


def error_for_reject(reject: Reject) -> AppError:
    """Turn a gate or verifier rejection into the matching HTTP error."""
    error_cls = _ERROR_BY_KIND.get(reject.reason, InvalidCredentialsError)
    return error_cls(detail=reject.detail or None)
