import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING, Optional, Sequence
from uuid import uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Numeric, String, Text, delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.program import Program


class Expense(Base, TimestampMixin):
    """A recorded cost charged against a program's budget."""

    __tablename__ = "expenses"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    program_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("programs.id"), nullable=True, index=True
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    program: Mapped[Optional["Program"]] = relationship("Program")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="amount_non_negative"),
    )

    @classmethod
    async def get_by_id(
        cls, db_session: AsyncSession, id: str
    ) -> Optional["Expense"]:
        """Get expense by ID."""
        result = await db_session.execute(select(cls).where(cls.id == id))
        return result.scalars().first()

    @classmethod
    async def get_all(
        cls, db_session: AsyncSession, program_id: Optional[str] = None
    ) -> Sequence["Expense"]:
        """Get expenses, optionally for one program, newest first."""
        query = select(cls)
        if program_id:
            query = query.where(cls.program_id == program_id)
        result = await db_session.execute(query.order_by(cls.date.desc(), cls.created_at.desc()))
        return result.scalars().all()

    @classmethod
    async def get_categories(cls, db_session: AsyncSession) -> list[str]:
        """Distinct categories in use."""
        result = await db_session.execute(
            select(cls.category).distinct().order_by(cls.category)
        )
        return [c for c in result.scalars().all() if c]

    @classmethod
    async def create_expense(cls, db_session: AsyncSession, **kwargs) -> "Expense":
        """Create a new expense."""
        expense = cls(**kwargs)
        db_session.add(expense)
        await db_session.commit()
        await db_session.refresh(expense)
        return expense

    @classmethod
    async def delete_for_program(cls, db_session: AsyncSession, program_id: str) -> int:
        """Delete every expense of a program. Caller commits."""
        result = await db_session.execute(delete(cls).where(cls.program_id == program_id))
        return result.rowcount
