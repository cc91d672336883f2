"""Password validation functions."""

SPECIAL_CHARACTERS = "@$!%*?&"

# bcrypt only reads the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


def validate_password_strength(password: str) -> str:
    """Validate password strength requirements.

    Requirements:
    - At least 8 characters (should be enforced by Field min_length)
    - At most 72 bytes once UTF-8 encoded
    - At least one uppercase letter (A-Z)
    - At least one lowercase letter (a-z)
    - At least one digit (0-9)
    - At least one special character from ``@$!%*?&``

    Args:
        password: Password string to validate

    Returns:
        The validated password string

    Raises:
        ValueError: If password doesn't meet strength requirements

    Examples:
        >>> validate_password_strength("Str0ng!pw")
        'Str0ng!pw'
        >>> validate_password_strength("weakpass")
        Traceback (most recent call last):
        ...
        ValueError: Password must contain at least one uppercase letter

    """
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must not exceed {MAX_PASSWORD_BYTES} bytes")
    if not any(c.isupper() for c in password):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in password):
        raise ValueError("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in password):
        raise ValueError("Password must contain at least one digit")
    if not any(c in SPECIAL_CHARACTERS for c in password):
        raise ValueError(f"Password must contain at least one special character ({SPECIAL_CHARACTERS})")
    return password
