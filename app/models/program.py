import enum
import datetime as dt
from decimal import Decimal
from typing import Optional, Sequence
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    Enum,
    Numeric,
    String,
    Text,
    extract,
    or_,
    select,
)
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base, TimestampMixin


class ProgramStatus(str, enum.Enum):
    """Lifecycle stage of a program."""

    PLANNING = "Planning"
    ACTIVE = "Active"
    COMPLETED = "Completed"


class Program(Base, TimestampMixin):
    """A scheduled youth-council activity with an allocated budget."""

    __tablename__ = "programs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    time: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    location: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    budget: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    status: Mapped[ProgramStatus] = mapped_column(
        Enum(
            ProgramStatus,
            native_enum=False,
            length=20,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=ProgramStatus.PLANNING,
        nullable=False,
    )
    file_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        CheckConstraint("budget >= 0", name="budget_non_negative"),
    )

    @classmethod
    async def get_by_id(
        cls, db_session: AsyncSession, id: str
    ) -> Optional["Program"]:
        """Get program by ID."""
        result = await db_session.execute(select(cls).where(cls.id == id))
        return result.scalars().first()

    @classmethod
    async def get_all(cls, db_session: AsyncSession) -> Sequence["Program"]:
        """Get every program, newest date first."""
        result = await db_session.execute(
            select(cls).order_by(cls.date.desc(), cls.name)
        )
        return result.scalars().all()

    @classmethod
    async def search(
        cls,
        db_session: AsyncSession,
        status: Optional[ProgramStatus] = None,
        term: Optional[str] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> Sequence["Program"]:
        """Filter programs by status, free-text term and calendar month/year."""
        query = select(cls)

        if status is not None:
            query = query.where(cls.status == status)
        if term:
            pattern = f"%{term.strip()}%"
            query = query.where(
                or_(
                    cls.name.ilike(pattern),
                    cls.location.ilike(pattern),
                    cls.description.ilike(pattern),
                )
            )
        if month is not None:
            query = query.where(extract("month", cls.date) == month)
        if year is not None:
            query = query.where(extract("year", cls.date) == year)

        result = await db_session.execute(query.order_by(cls.date.desc(), cls.name))
        return result.scalars().all()

    @classmethod
    async def create_program(cls, db_session: AsyncSession, **kwargs) -> "Program":
        """Create a new program."""
        program = cls(**kwargs)
        db_session.add(program)
        await db_session.commit()
        await db_session.refresh(program)
        return program
