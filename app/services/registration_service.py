"""Registration lifecycle: apply, admin add, status changes and removal."""

from dataclasses import dataclass, field
from typing import Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.expense import Expense
from app.models.participant import Participant
from app.models.program import Program
from app.models.registration import (
    ProgramMembership,
    Registration,
    RegistrationStatus,
    utcnow,
)
from core.config import config
from core.exceptions import (
    AlreadyAppliedException,
    ConflictException,
    IncompleteProfileException,
    NotFoundException,
    RegistrationNotFoundException,
    StoreException,
    ValidationException,
)
from core.logging import get_logger

logger = get_logger(__name__)

# Profile fields a participant needs before joining, with their display names
REQUIRED_PROFILE_FIELDS = (
    ("first_name", "First Name"),
    ("last_name", "Last Name"),
    ("age", "Age"),
    ("contact", "Contact Number"),
)

FORWARD_TRANSITIONS = {
    RegistrationStatus.PENDING: {
        RegistrationStatus.APPROVED,
        RegistrationStatus.REJECTED,
        RegistrationStatus.WAITLISTED,
    },
    RegistrationStatus.WAITLISTED: {
        RegistrationStatus.APPROVED,
        RegistrationStatus.REJECTED,
    },
    RegistrationStatus.APPROVED: set(),
    RegistrationStatus.REJECTED: set(),
}


def missing_profile_fields(participant: Participant) -> list[str]:
    """Display names of required profile fields that are empty."""
    missing = []
    for attr, label in REQUIRED_PROFILE_FIELDS:
        value = getattr(participant, attr, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(label)
    return missing


def parse_status(value) -> RegistrationStatus:
    """Coerce a raw status value, raising ValidationException listing valid values."""
    if isinstance(value, RegistrationStatus):
        return value
    try:
        return RegistrationStatus(value)
    except ValueError:
        raise ValidationException(
            message=(
                f"Invalid status '{value}'. "
                f"Must be one of: {', '.join(RegistrationStatus.values())}"
            ),
            data={"valid_statuses": RegistrationStatus.values()},
        )


def allowed_sources(
    target: RegistrationStatus, policy: str
) -> Optional[set[RegistrationStatus]]:
    """Statuses a registration may move to ``target`` from; None means any."""
    if policy == "permissive":
        return None
    sources = {s for s, targets in FORWARD_TRANSITIONS.items() if target in targets}
    # Re-setting the current value is a no-op and always allowed
    sources.add(target)
    return sources


@dataclass
class AddParticipantsResult:
    added: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.added) and bool(self.errors)


class RegistrationService:
    """Service for the registration lifecycle of participants in programs."""

    def __init__(self, db_session: AsyncSession, policy: Optional[str] = None):
        self.db_session = db_session
        self.policy = policy or config.REGISTRATION_STATUS_POLICY

    async def _get_program(self, program_id: str) -> Program:
        program = await Program.get_by_id(self.db_session, program_id)
        if not program:
            raise NotFoundException(message=f"Program {program_id} not found")
        return program

    async def _get_participant(self, participant_id: str) -> Participant:
        participant = await Participant.get_by_id(self.db_session, participant_id)
        if not participant:
            raise NotFoundException(message=f"Participant {participant_id} not found")
        return participant

    async def _existing_status(
        self, program_id: str, participant_id: str
    ) -> Optional[RegistrationStatus]:
        registration = await Registration.get_by_pair(
            self.db_session, program_id, participant_id
        )
        if registration:
            return registration.registration_status
        if await ProgramMembership.get_by_pair(self.db_session, program_id, participant_id):
            # Membership without a registration row; treat as pending
            return RegistrationStatus.PENDING
        return None

    async def _insert_registration(
        self,
        program_id: str,
        participant_id: str,
        status: RegistrationStatus,
    ) -> Registration:
        """Insert membership and registration in one transaction."""
        now = utcnow()
        registration = Registration(
            program_id=program_id,
            participant_id=participant_id,
            registration_status=status,
            registration_date=now,
            updated_at=now,
        )
        self.db_session.add(
            ProgramMembership(
                program_id=program_id, participant_id=participant_id, joined_at=now
            )
        )
        self.db_session.add(registration)
        try:
            await self.db_session.commit()
        except IntegrityError as exc:
            await self.db_session.rollback()
            existing = await self._existing_status(program_id, participant_id)
            if existing is not None:
                logger.warning(
                    f"Concurrent registration for participant {participant_id} "
                    f"in program {program_id}"
                )
                raise AlreadyAppliedException(
                    data={"registration_status": existing.value}
                )
            # No row for the pair, so a referenced program or participant is gone
            logger.error(f"Failed to register participant {participant_id}: {exc}")
            if not await Program.get_by_id(self.db_session, program_id):
                raise NotFoundException(message=f"Program {program_id} not found")
            if not await Participant.get_by_id(self.db_session, participant_id):
                raise NotFoundException(message=f"Participant {participant_id} not found")
            raise StoreException(message=f"Failed to save registration: {exc}")
        except SQLAlchemyError as exc:
            await self.db_session.rollback()
            logger.error(f"Failed to register participant {participant_id}: {exc}")
            raise StoreException(message=f"Failed to save registration: {exc}")

        return await Registration.get_by_pair(self.db_session, program_id, participant_id)

    async def apply(self, participant_id: str, program_id: str) -> Registration:
        """
        Self-service application to a program.

        The participant profile must be complete and no registration may
        exist for the pair. Creates a Pending registration.
        """
        participant = await self._get_participant(participant_id)

        missing = missing_profile_fields(participant)
        if missing:
            logger.warning(
                f"Participant {participant_id} cannot apply, missing: {', '.join(missing)}"
            )
            raise IncompleteProfileException(missing)

        await self._get_program(program_id)

        existing = await self._existing_status(program_id, participant_id)
        if existing is not None:
            logger.info(
                f"Participant {participant_id} already applied to {program_id} "
                f"({existing.value})"
            )
            raise AlreadyAppliedException(
                message=f"Already applied to this program. Status: {existing.value}",
                data={"registration_status": existing.value},
            )

        registration = await self._insert_registration(
            program_id, participant_id, RegistrationStatus.PENDING
        )
        logger.info(f"Participant {participant_id} applied to program {program_id}")
        return registration

    async def apply_for_user(self, user_id: str, program_id: str) -> Registration:
        participant = await Participant.get_by_user_id(self.db_session, user_id)
        if not participant:
            raise NotFoundException(message="Participant profile not found")
        return await self.apply(participant.id, program_id)

    async def add_participants(
        self, program_id: str, participant_ids: Sequence[str]
    ) -> AddParticipantsResult:
        """
        Admin add: register each participant as Approved.

        Each participant is committed on its own, so one failure does not
        undo the others.
        """
        await self._get_program(program_id)
        result = AddParticipantsResult()

        for participant_id in dict.fromkeys(participant_ids):
            participant = await Participant.get_by_id(self.db_session, participant_id)
            if not participant:
                result.errors.append(f"Participant {participant_id} not found")
                continue
            name = participant.full_name

            existing = await self._existing_status(program_id, participant_id)
            if existing is not None:
                result.errors.append(
                    f"{name} is already registered ({existing.value})"
                )
                continue

            try:
                await self._insert_registration(
                    program_id, participant_id, RegistrationStatus.APPROVED
                )
            except (AlreadyAppliedException, NotFoundException, StoreException) as exc:
                result.errors.append(f"{name}: {exc.message}")
                continue
            result.added.append(participant_id)

        logger.info(
            f"Added {len(result.added)} participants to program {program_id}, "
            f"{len(result.errors)} errors"
        )
        return result

    async def set_status(
        self, program_id: str, participant_id: str, status
    ) -> Registration:
        """
        Replace the status of an existing registration in place.

        Never inserts: a missing pair raises RegistrationNotFoundException.
        """
        target = parse_status(status)
        result = await Registration.update_registration_status(
            self.db_session,
            program_id,
            participant_id,
            target,
            allowed_from=allowed_sources(target, self.policy),
        )

        if result.success:
            logger.info(
                f"Registration {program_id}/{participant_id} set to {target.value}"
            )
            return result.data

        logger.warning(
            f"Status change for {program_id}/{participant_id} to {target.value} "
            f"failed: {result.error}"
        )
        if result.error_code == "NOT_FOUND":
            raise RegistrationNotFoundException()
        if result.error_code == "INVALID_TRANSITION":
            raise ConflictException(
                message=result.error,
                error_code="INVALID_STATUS_TRANSITION",
                data={
                    "current_status": result.data.registration_status.value,
                    "requested_status": target.value,
                },
            )
        raise StoreException(message=f"Failed to update registration: {result.error}")

    async def set_status_by_id(self, registration_id: str, status) -> Registration:
        registration = await Registration.get_by_id(self.db_session, registration_id)
        if not registration:
            raise RegistrationNotFoundException()
        return await self.set_status(
            registration.program_id, registration.participant_id, status
        )

    async def approve(self, registration_id: str) -> Registration:
        return await self.set_status_by_id(registration_id, RegistrationStatus.APPROVED)

    async def reject(self, registration_id: str) -> Registration:
        return await self.set_status_by_id(registration_id, RegistrationStatus.REJECTED)

    async def remove_participant(self, participant_id: str) -> None:
        """Delete a participant with its memberships and registrations."""
        participant = await self._get_participant(participant_id)
        try:
            removed = await Registration.delete_for_participant(
                self.db_session, participant_id
            )
            await self.db_session.delete(participant)
            await self.db_session.commit()
        except SQLAlchemyError as exc:
            await self.db_session.rollback()
            logger.error(f"Failed to delete participant {participant_id}: {exc}")
            raise StoreException(message=f"Failed to delete participant: {exc}")
        logger.info(f"Deleted participant {participant_id} and {removed} registrations")

    async def remove_program(self, program_id: str) -> None:
        """Delete a program with its expenses, memberships and registrations."""
        program = await self._get_program(program_id)
        try:
            await Expense.delete_for_program(self.db_session, program_id)
            removed = await Registration.delete_for_program(self.db_session, program_id)
            await self.db_session.delete(program)
            await self.db_session.commit()
        except SQLAlchemyError as exc:
            await self.db_session.rollback()
            logger.error(f"Failed to delete program {program_id}: {exc}")
            raise StoreException(message=f"Failed to delete program: {exc}")
        logger.info(f"Deleted program {program_id} and {removed} registrations")

    async def program_registrations(
        self, program_id: str, status: Optional[RegistrationStatus] = None
    ) -> Sequence[Registration]:
        await self._get_program(program_id)
        return await Registration.get_by_program(self.db_session, program_id, status)

    async def statuses_for_user(self, user_id: str) -> dict[str, RegistrationStatus]:
        """Status per program id for the user's participant profile."""
        participant = await Participant.get_by_user_id(self.db_session, user_id)
        if not participant:
            return {}
        registrations = await Registration.get_by_participant(
            self.db_session, participant.id
        )
        return {r.program_id: r.registration_status for r in registrations}
