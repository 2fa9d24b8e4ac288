import enum
from typing import Optional, Sequence
from uuid import uuid4

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Integer, String, Text, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base, TimestampMixin


class FeedbackCategory(str, enum.Enum):
    BUG = "bug"
    FEATURE = "feature"
    IMPROVEMENT = "improvement"
    GENERAL = "general"
    OTHER = "other"


class FeedbackStatus(str, enum.Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Feedback(Base, TimestampMixin):
    """Free-text feedback submitted by portal users."""

    __tablename__ = "feedback"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    category: Mapped[FeedbackCategory] = mapped_column(
        Enum(
            FeedbackCategory,
            native_enum=False,
            length=20,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=FeedbackCategory.GENERAL,
        nullable=False,
    )
    status: Mapped[FeedbackStatus] = mapped_column(
        Enum(
            FeedbackStatus,
            native_enum=False,
            length=20,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=FeedbackStatus.PENDING,
        nullable=False,
        index=True,
    )

    __table_args__ = (
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="rating_range"),
    )

    @classmethod
    async def get_by_id(
        cls, db_session: AsyncSession, id: str
    ) -> Optional["Feedback"]:
        result = await db_session.execute(select(cls).where(cls.id == id))
        return result.scalars().first()

    @classmethod
    async def get_filtered(
        cls,
        db_session: AsyncSession,
        category: Optional[FeedbackCategory] = None,
        status: Optional[FeedbackStatus] = None,
    ) -> Sequence["Feedback"]:
        """Feedback newest first, optionally filtered by category and status."""
        query = select(cls)
        if category:
            query = query.where(cls.category == category)
        if status:
            query = query.where(cls.status == status)
        result = await db_session.execute(query.order_by(cls.created_at.desc()))
        return result.scalars().all()

    @classmethod
    async def create_feedback(cls, db_session: AsyncSession, **kwargs) -> "Feedback":
        feedback = cls(**kwargs)
        db_session.add(feedback)
        await db_session.commit()
        await db_session.refresh(feedback)
        return feedback
