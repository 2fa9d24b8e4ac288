import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Sequence
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Enum, Integer, String, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.db import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.participant import Participant


class Role(str, enum.Enum):
    """User roles in the portal."""
    USER = "user"
    ADMIN = "admin"
    SKOFFICIAL = "skofficial"


# Roles allowed to manage programs, registrations and expenses
STAFF_ROLES = (Role.ADMIN, Role.SKOFFICIAL)


class User(Base, TimestampMixin):
    """Login account. Regular users may own one participant profile."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(
        Enum(
            Role,
            native_enum=False,
            length=20,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=Role.USER,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Bumped on logout; tokens minted with an older value stop validating
    token_version: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    participant: Mapped[Optional["Participant"]] = relationship(
        "Participant", back_populates="user", uselist=False
    )

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @staticmethod
    def normalize_email(email: str) -> str:
        """Normalize emails so uniqueness checks are case-insensitive."""
        return email.strip().lower()

    @classmethod
    async def get_by_id(
        cls, db_session: AsyncSession, id: str
    ) -> Optional["User"]:
        """Get user by ID."""
        result = await db_session.execute(select(cls).where(cls.id == id))
        return result.scalars().first()

    @classmethod
    async def get_by_email(
        cls, db_session: AsyncSession, email: str
    ) -> Optional["User"]:
        """Get user by email."""
        result = await db_session.execute(
            select(cls).where(cls.email == cls.normalize_email(email))
        )
        return result.scalars().first()

    @classmethod
    async def get_by_login(
        cls, db_session: AsyncSession, login: str
    ) -> Optional["User"]:
        """Get user by email or username."""
        result = await db_session.execute(
            select(cls).where(
                or_(
                    cls.email == cls.normalize_email(login),
                    cls.username == login.strip(),
                )
            )
        )
        return result.scalars().first()

    @classmethod
    async def get_by_username(
        cls, db_session: AsyncSession, username: str
    ) -> Optional["User"]:
        result = await db_session.execute(
            select(cls).where(cls.username == username.strip())
        )
        return result.scalars().first()

    @classmethod
    async def create_user(
        cls,
        db_session: AsyncSession,
        username: str,
        email: str,
        hashed_password: str,
        role: Role = Role.USER,
    ) -> "User":
        """Create a new user."""
        user = cls(
            username=username.strip(),
            email=cls.normalize_email(email),
            hashed_password=hashed_password,
            role=role,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    @classmethod
    async def get_all(
        cls, db_session: AsyncSession, skip: int = 0, limit: int = 100
    ) -> Sequence["User"]:
        """Get all users with pagination."""
        result = await db_session.execute(
            select(cls).offset(skip).limit(limit).order_by(cls.created_at.desc())
        )
        return result.scalars().all()
