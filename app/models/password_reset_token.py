"""Password reset token model for the forgot password flow."""

from datetime import datetime, timedelta, timezone
from secrets import token_urlsafe
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, String, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base, CreatedAtMixin


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PasswordResetToken(Base, CreatedAtMixin):
    """
    Single-use password reset token.

    A token stops working once it is used, once it expires, or when a
    newer token is issued for the same account.
    """

    __tablename__ = "password_reset_tokens"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @classmethod
    def generate_token(cls) -> str:
        return token_urlsafe(32)

    @classmethod
    async def create_token(
        cls, db_session: AsyncSession, user_id: str, expires_in_minutes: int
    ) -> "PasswordResetToken":
        """Create and commit a new token for the user."""
        reset_token = cls(
            user_id=user_id,
            token=cls.generate_token(),
            expires_at=datetime.now(timezone.utc) + timedelta(minutes=expires_in_minutes),
        )
        db_session.add(reset_token)
        await db_session.commit()
        await db_session.refresh(reset_token)
        return reset_token

    @classmethod
    async def get_by_token(
        cls, db_session: AsyncSession, token: str
    ) -> Optional["PasswordResetToken"]:
        result = await db_session.execute(select(cls).where(cls.token == token))
        return result.scalars().first()

    def is_valid(self) -> bool:
        """Check if token is still valid (not expired and not used)."""
        if self.used_at:
            return False
        return datetime.now(timezone.utc) < _as_utc(self.expires_at)

    def mark_as_used(self) -> None:
        """Mark token as used. Caller commits."""
        self.used_at = datetime.now(timezone.utc)

    @classmethod
    async def invalidate_user_tokens(cls, db_session: AsyncSession, user_id: str) -> None:
        """Mark every unused token of the user as used. Caller commits."""
        await db_session.execute(
            update(cls)
            .where(cls.user_id == user_id, cls.used_at.is_(None))
            .values(used_at=datetime.now(timezone.utc))
        )
