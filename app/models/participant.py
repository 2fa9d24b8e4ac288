from typing import TYPE_CHECKING, Optional, Sequence
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
    or_,
    select,
)
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.user import User


class Participant(Base, TimestampMixin):
    """A person eligible to join programs, optionally linked to a login."""

    __tablename__ = "participants"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        unique=True,
        nullable=True,
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    # Nullable so a freshly linked account can exist before the profile is filled in
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    contact: Mapped[str] = mapped_column(String(30), nullable=False, default="")
    email: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user: Mapped[Optional["User"]] = relationship("User", back_populates="participant")

    __table_args__ = (
        CheckConstraint("age IS NULL OR (age >= 1 AND age <= 120)", name="age_range"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    async def get_by_id(
        cls, db_session: AsyncSession, id: str
    ) -> Optional["Participant"]:
        """Get participant by ID."""
        result = await db_session.execute(select(cls).where(cls.id == id))
        return result.scalars().first()

    @classmethod
    async def get_by_user_id(
        cls, db_session: AsyncSession, user_id: str
    ) -> Optional["Participant"]:
        """Get the participant profile linked to a user account."""
        result = await db_session.execute(select(cls).where(cls.user_id == user_id))
        return result.scalars().first()

    @classmethod
    async def find_duplicate(
        cls,
        db_session: AsyncSession,
        first_name: str,
        last_name: str,
        contact: str,
        exclude_id: Optional[str] = None,
    ) -> Optional["Participant"]:
        """Find a participant with the same name and contact number."""
        query = select(cls).where(
            func.lower(cls.first_name) == first_name.strip().lower(),
            func.lower(cls.last_name) == last_name.strip().lower(),
            cls.contact == contact.strip(),
        )
        if exclude_id:
            query = query.where(cls.id != exclude_id)
        result = await db_session.execute(query)
        return result.scalars().first()

    @classmethod
    async def search(
        cls, db_session: AsyncSession, term: Optional[str] = None
    ) -> Sequence["Participant"]:
        """List participants, optionally matching name, contact or email."""
        query = select(cls)
        if term:
            pattern = f"%{term.strip()}%"
            query = query.where(
                or_(
                    cls.first_name.ilike(pattern),
                    cls.last_name.ilike(pattern),
                    cls.contact.ilike(pattern),
                    cls.email.ilike(pattern),
                )
            )
        result = await db_session.execute(
            query.order_by(cls.last_name, cls.first_name)
        )
        return result.scalars().all()

    @classmethod
    async def count(cls, db_session: AsyncSession) -> int:
        result = await db_session.execute(select(func.count(cls.id)))
        return result.scalar_one()
