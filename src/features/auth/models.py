"""Authentication models (refresh token storage)."""

from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, UTCDateTime, utcnow


class RefreshToken(Base):
    """Opaque refresh token.

    A row is active while ``revoked_at`` is unset and ``expires_at`` lies in
    the future. Rows are never reused or un-revoked; rotation revokes the
    presented row and inserts a new one.
    """

    __tablename__ = "refresh_tokens"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Token data
    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)

    # Audit trail
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    created_by_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)  # IPv6 max length is 45

    def is_active(self, now: datetime | None = None) -> bool:
        """Check whether the token can still be exchanged."""
        now = now or utcnow()
        return self.revoked_at is None and now < self.expires_at
