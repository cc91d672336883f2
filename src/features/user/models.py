"""User domain models."""

from datetime import date, datetime
from enum import StrEnum

from sqlalchemy import Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UTCDateTime
from src.features.auth.password import hash_password, verify_password


class UserRole(StrEnum):
    """User roles for RBAC.

    USER: Default role for self-registered accounts.
    ADMIN: Can list users, change roles and delete products.
    """

    USER = "User"
    ADMIN = "Admin"


def normalize_email(email: str) -> str:
    """Emails are compared case-insensitively; store and look up the lower-cased form."""
    return email.strip().lower()


class User(Base, TimestampMixin):
    """User model for authentication and authorization."""

    __tablename__ = "users"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Identity (unique on the normalized email)
    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Authentication
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # Authorization
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.USER.value,
        server_default=UserRole.USER.value,
    )

    # Audit
    last_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def verify_password(self, plain_password: str) -> bool:
        """Verify a password against the stored bcrypt hash."""
        return verify_password(plain_password, self.hashed_password)

    @staticmethod
    def hash_password(password: str) -> str:
        return hash_password(password)
