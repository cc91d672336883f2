"""User-related exceptions."""

from src.shared.errors.exceptions import AppError, ErrorKind


class UserNotFound(AppError):
    """Raised when user is not found."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, user_id: int | None = None):
        detail = f"User {user_id} not found" if user_id is not None else None
        super().__init__(detail=detail, public_message="User not found")


class EmailAlreadyExists(AppError):
    """Raised when registering an email that already belongs to an account."""

    kind = ErrorKind.DUPLICATE

    def __init__(self, email: str):
        message = f"User with email '{email}' already exists"
        super().__init__(detail=message, public_message=message)


class CannotChangeOwnRole(AppError):
    """Raised when an admin tries to demote themselves."""

    kind = ErrorKind.VALIDATION

    def __init__(self):
        message = "Cannot change your own role"
        super().__init__(detail=message, public_message=message)
