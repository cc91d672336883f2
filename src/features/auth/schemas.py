"""Authentication schemas (DTOs)."""

from datetime import date

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.shared.validators.password import validate_password_strength


# Request schemas
class RegisterRequest(BaseModel):
    """Self-registration request.

    Note: Uses email-validator library via Pydantic's EmailStr for RFC 5322 compliant email validation.
    """

    email: EmailStr
    password: str = Field(
        ...,
        min_length=8,
        max_length=100,
        description="Password (8-100 characters, must include uppercase, lowercase, digit and one of @$!%*?&)",
    )
    full_name: str = Field(..., min_length=2, max_length=100)
    birth_date: date

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        """Validate password strength using shared validator."""
        return validate_password_strength(value)

    @field_validator("full_name")
    @classmethod
    def strip_full_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Full name must be at least 2 characters")
        return value

    @field_validator("birth_date")
    @classmethod
    def check_birth_date(cls, value: date) -> date:
        """Birth date must be in the past and at most 120 years ago."""
        today = date.today()
        if value >= today:
            raise ValueError("Birth date must be in the past")
        try:
            oldest = today.replace(year=today.year - 120)
        except ValueError:
            # Feb 29 in a non-leap target year
            oldest = today.replace(year=today.year - 120, day=28)
        if value < oldest:
            raise ValueError("Birth date cannot be more than 120 years ago")
        return value


class LoginRequest(BaseModel):
    """Login request. The password is not strength-checked here so old passwords still work."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)


class RefreshTokenRequest(BaseModel):
    """Refresh request."""

    refresh_token: str = Field(..., min_length=32, max_length=500)


class LogoutRequest(BaseModel):
    """Logout request. Any non-empty value is accepted; unknown tokens are a no-op."""

    refresh_token: str = Field(..., min_length=1, max_length=500)


# Response schemas
class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class MessageResponse(BaseModel):
    message: str
