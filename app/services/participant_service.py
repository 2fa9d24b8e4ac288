"""Participant profiles: admin-managed records and each user's own profile."""

from typing import Optional
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.participant import Participant
from app.models.program import Program
from app.models.registration import (
    ProgramMembership,
    Registration,
    RegistrationStatus,
    utcnow,
)
from app.schemas.participant import ParticipantCreate, ParticipantUpdate
from core.exceptions.base import (
    ConflictException,
    NotFoundException,
    StoreException,
    ValidationException,
)
from core.logging import get_logger

logger = get_logger(__name__)


class ParticipantService:
    """Service for creating and editing participant profiles."""

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def get(self, participant_id: str) -> Participant:
        participant = await Participant.get_by_id(self.db_session, participant_id)
        if not participant:
            raise NotFoundException(message=f"Participant {participant_id} not found")
        return participant

    async def _check_duplicate(
        self,
        first_name: str,
        last_name: str,
        contact: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        if not (first_name and last_name and contact):
            return
        duplicate = await Participant.find_duplicate(
            self.db_session, first_name, last_name, contact, exclude_id=exclude_id
        )
        if duplicate:
            logger.warning(f"Duplicate participant {first_name} {last_name} ({contact})")
            raise ConflictException(
                message="A participant with this name and contact number already exists",
                error_code="DUPLICATE_PARTICIPANT",
                data={"participant_id": duplicate.id},
            )

    async def _commit(self, action: str) -> None:
        try:
            await self.db_session.commit()
        except IntegrityError as exc:
            await self.db_session.rollback()
            logger.warning(f"Failed to {action}: {exc}")
            raise ConflictException(message=f"Failed to {action}: conflicting data")
        except SQLAlchemyError as exc:
            await self.db_session.rollback()
            logger.error(f"Failed to {action}: {exc}")
            raise StoreException(message=f"Failed to {action}: {exc}")

    async def create(self, data: ParticipantCreate) -> Participant:
        """
        Create a participant, optionally registering them in programs.

        The participant and every requested registration (status Approved)
        are written in one transaction.
        """
        await self._check_duplicate(data.first_name, data.last_name, data.contact)

        program_ids = list(dict.fromkeys(data.program_ids))
        for program_id in program_ids:
            if not await Program.get_by_id(self.db_session, program_id):
                raise ValidationException(message=f"Program {program_id} not found")

        participant = Participant(
            id=str(uuid4()), **data.model_dump(exclude={"program_ids"})
        )
        self.db_session.add(participant)

        now = utcnow()
        for program_id in program_ids:
            self.db_session.add(
                ProgramMembership(
                    program_id=program_id, participant_id=participant.id, joined_at=now
                )
            )
            self.db_session.add(
                Registration(
                    program_id=program_id,
                    participant_id=participant.id,
                    registration_status=RegistrationStatus.APPROVED,
                    registration_date=now,
                    updated_at=now,
                )
            )

        await self._commit("create participant")
        await self.db_session.refresh(participant)
        logger.info(
            f"Created participant {participant.id} in {len(program_ids)} programs"
        )
        return participant

    async def update(self, participant: Participant, data: ParticipantUpdate) -> Participant:
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

        await self._check_duplicate(
            changes.get("first_name", participant.first_name),
            changes.get("last_name", participant.last_name),
            changes.get("contact", participant.contact),
            exclude_id=participant.id,
        )

        for field, value in changes.items():
            setattr(participant, field, value)

        await self._commit("update participant")
        await self.db_session.refresh(participant)
        logger.info(f"Updated participant {participant.id}")
        return participant

    async def get_or_create_for_user(self, user_id: str, email: str) -> Participant:
        """Return the user's own profile, creating an empty one on first use."""
        participant = await Participant.get_by_user_id(self.db_session, user_id)
        if participant:
            return participant

        participant = Participant(user_id=user_id, email=email)
        self.db_session.add(participant)
        try:
            await self.db_session.commit()
        except IntegrityError as exc:
            await self.db_session.rollback()
            # Another request created the profile first; user_id is unique
            winner = await Participant.get_by_user_id(self.db_session, user_id)
            if winner:
                logger.info(f"Participant profile for user {user_id} created concurrently")
                return winner
            logger.warning(f"Failed to create profile: {exc}")
            raise ConflictException(message="Failed to create profile: conflicting data")
        except SQLAlchemyError as exc:
            await self.db_session.rollback()
            logger.error(f"Failed to create profile: {exc}")
            raise StoreException(message=f"Failed to create profile: {exc}")
        await self.db_session.refresh(participant)
        logger.info(f"Created empty participant profile for user {user_id}")
        return participant
