"""Registration and membership models linking participants to programs."""

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Collection, Optional, Sequence
from uuid import uuid4

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    String,
    UniqueConstraint,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column, relationship, selectinload

from core.db import Base
from core.logging import get_logger

if TYPE_CHECKING:
    from app.models.participant import Participant
    from app.models.program import Program

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RegistrationStatus(str, enum.Enum):
    """Approval state of a participant's registration."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    WAITLISTED = "Waitlisted"

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]


class ProgramMembership(Base):
    """Marker that a participant has joined a program."""

    __tablename__ = "program_participants"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    program_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("programs.id"), nullable=False, index=True
    )
    participant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("participants.id"), nullable=False, index=True
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "program_id", "participant_id", name="uq_program_participants_pair"
        ),
    )

    participant: Mapped["Participant"] = relationship("Participant")
    program: Mapped["Program"] = relationship("Program")

    @classmethod
    async def get_by_pair(
        cls, db_session: AsyncSession, program_id: str, participant_id: str
    ) -> Optional["ProgramMembership"]:
        result = await db_session.execute(
            select(cls).where(
                cls.program_id == program_id, cls.participant_id == participant_id
            )
        )
        return result.scalars().first()


@dataclass
class ProcedureResult:
    """Structured outcome of a store-side procedure: success plus data or error."""

    success: bool
    data: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class Registration(Base):
    """One participant's registration for one program."""

    __tablename__ = "registrations"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    program_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("programs.id"), nullable=False, index=True
    )
    participant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("participants.id"), nullable=False, index=True
    )
    registration_status: Mapped[RegistrationStatus] = mapped_column(
        Enum(
            RegistrationStatus,
            native_enum=False,
            length=20,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=RegistrationStatus.PENDING,
        nullable=False,
        index=True,
    )
    registration_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "program_id", "participant_id", name="uq_registrations_pair"
        ),
    )

    participant: Mapped["Participant"] = relationship("Participant")
    program: Mapped["Program"] = relationship("Program")

    @classmethod
    async def get_by_id(
        cls, db_session: AsyncSession, id: str
    ) -> Optional["Registration"]:
        result = await db_session.execute(
            select(cls)
            .options(selectinload(cls.participant), selectinload(cls.program))
            .where(cls.id == id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @classmethod
    async def get_by_pair(
        cls, db_session: AsyncSession, program_id: str, participant_id: str
    ) -> Optional["Registration"]:
        """Get the registration for a (program, participant) pair, freshly read."""
        result = await db_session.execute(
            select(cls)
            .options(selectinload(cls.participant), selectinload(cls.program))
            .where(cls.program_id == program_id, cls.participant_id == participant_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @classmethod
    async def get_by_program(
        cls,
        db_session: AsyncSession,
        program_id: str,
        status: Optional[RegistrationStatus] = None,
    ) -> Sequence["Registration"]:
        """Registrations for a program joined with participant and program, newest first."""
        conditions = [cls.program_id == program_id]
        if status:
            conditions.append(cls.registration_status == status)

        result = await db_session.execute(
            select(cls)
            .options(selectinload(cls.participant), selectinload(cls.program))
            .where(*conditions)
            .order_by(cls.registration_date.desc())
        )
        return result.scalars().all()

    @classmethod
    async def get_by_participant(
        cls, db_session: AsyncSession, participant_id: str
    ) -> Sequence["Registration"]:
        result = await db_session.execute(
            select(cls)
            .options(selectinload(cls.participant), selectinload(cls.program))
            .where(cls.participant_id == participant_id)
            .order_by(cls.registration_date.desc())
        )
        return result.scalars().all()

    @classmethod
    async def get_requests(
        cls,
        db_session: AsyncSession,
        status: Optional[RegistrationStatus] = None,
        program_id: Optional[str] = None,
    ) -> Sequence["Registration"]:
        """Registration requests across all programs for admin review."""
        conditions = []
        if status:
            conditions.append(cls.registration_status == status)
        if program_id:
            conditions.append(cls.program_id == program_id)

        result = await db_session.execute(
            select(cls)
            .options(selectinload(cls.participant), selectinload(cls.program))
            .where(*conditions)
            .order_by(cls.registration_date.desc())
        )
        return result.scalars().all()

    @classmethod
    async def count_by_status(
        cls, db_session: AsyncSession, program_id: Optional[str] = None
    ) -> dict[str, int]:
        query = select(cls.registration_status, func.count(cls.id)).group_by(
            cls.registration_status
        )
        if program_id:
            query = query.where(cls.program_id == program_id)
        result = await db_session.execute(query)
        counts = {status.value: 0 for status in RegistrationStatus}
        for status, total in result.all():
            counts[RegistrationStatus(status).value] = total
        return counts

    @classmethod
    async def update_registration_status(
        cls,
        db_session: AsyncSession,
        program_id: str,
        participant_id: str,
        status: RegistrationStatus,
        allowed_from: Optional[Collection[RegistrationStatus]] = None,
    ) -> ProcedureResult:
        """
        Set the status of an existing registration in one transaction.

        The existence check and the write are a single conditional UPDATE,
        so there is no window between "row exists" and "row written". When
        ``allowed_from`` is given, only rows currently in one of those
        statuses are updated. Never inserts.

        Returns a ProcedureResult instead of raising.
        """
        conditions = [cls.program_id == program_id, cls.participant_id == participant_id]
        if allowed_from is not None:
            conditions.append(cls.registration_status.in_(list(allowed_from)))

        try:
            result = await db_session.execute(
                update(cls)
                .where(*conditions)
                .values(registration_status=status, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            matched = result.rowcount
            if matched == 0:
                # Nothing was written; end the transaction without expiring loaded rows
                await db_session.commit()
                existing = await cls.get_by_pair(db_session, program_id, participant_id)
                if existing is None:
                    return ProcedureResult(
                        success=False,
                        error="Registration not found",
                        error_code="NOT_FOUND",
                    )
                return ProcedureResult(
                    success=False,
                    data=existing,
                    error=(
                        f"Cannot change status from "
                        f"{existing.registration_status.value} to {status.value}"
                    ),
                    error_code="INVALID_TRANSITION",
                )
            await db_session.commit()
        except SQLAlchemyError as exc:
            await db_session.rollback()
            logger.error(f"update_registration_status failed: {exc}")
            return ProcedureResult(success=False, error=str(exc), error_code="STORE_ERROR")

        registration = await cls.get_by_pair(db_session, program_id, participant_id)
        return ProcedureResult(success=True, data=registration)

    @classmethod
    async def delete_for_program(cls, db_session: AsyncSession, program_id: str) -> int:
        """Delete registrations and memberships of a program. Caller commits."""
        await db_session.execute(
            delete(ProgramMembership).where(ProgramMembership.program_id == program_id)
        )
        result = await db_session.execute(delete(cls).where(cls.program_id == program_id))
        return result.rowcount

    @classmethod
    async def delete_for_participant(
        cls, db_session: AsyncSession, participant_id: str
    ) -> int:
        """Delete registrations and memberships of a participant. Caller commits."""
        await db_session.execute(
            delete(ProgramMembership).where(
                ProgramMembership.participant_id == participant_id
            )
        )
        result = await db_session.execute(
            delete(cls).where(cls.participant_id == participant_id)
        )
        return result.rowcount
