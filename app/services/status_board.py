"""
Caller-side view of registration statuses with optimistic updates.

A board shows a status the moment it is chosen and reconciles with the
store afterwards: the new value is written locally, the writer is awaited,
and if the write fails the value seen before the change is put back.
Only one change per (program, participant) may be in flight at a time.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional

from app.models.registration import ProcedureResult, RegistrationStatus
from core.exceptions import ConflictException, CustomException
from core.logging import get_logger

logger = get_logger(__name__)

Key = tuple[str, str]
StatusWriter = Callable[[str, str, RegistrationStatus], Awaitable[Any]]


@dataclass
class StatusChange:
    """Outcome of one change: the status now shown plus the error, if any."""

    success: bool
    status: Optional[RegistrationStatus]
    previous: Optional[RegistrationStatus]
    error: Optional[str] = None


def service_writer(service) -> StatusWriter:
    """Adapt ``RegistrationService.set_status`` to the board's writer signature."""

    async def write(program_id: str, participant_id: str, status: RegistrationStatus):
        return await service.set_status(program_id, participant_id, status)

    return write


class RegistrationStatusBoard:
    """Local statuses keyed by (program_id, participant_id)."""

    def __init__(self, writer: StatusWriter):
        self.writer = writer
        self._statuses: dict[Key, RegistrationStatus] = {}
        self._in_flight: set[Key] = set()

    def load(self, registrations: Iterable) -> None:
        """Seed the board from registration rows."""
        for registration in registrations:
            key = (registration.program_id, registration.participant_id)
            self._statuses[key] = RegistrationStatus(registration.registration_status)

    def status(self, program_id: str, participant_id: str) -> Optional[RegistrationStatus]:
        return self._statuses.get((program_id, participant_id))

    def is_pending(self, program_id: str, participant_id: str) -> bool:
        return (program_id, participant_id) in self._in_flight

    def _restore(self, key: Key, previous: Optional[RegistrationStatus]) -> None:
        if previous is None:
            self._statuses.pop(key, None)
        else:
            self._statuses[key] = previous

    async def change_status(
        self, program_id: str, participant_id: str, new_status
    ) -> StatusChange:
        """
        Show ``new_status`` immediately, then persist it.

        On failure the prior value is restored and the error message is
        returned in the outcome. A second change for the same key while one
        is in flight raises ConflictException.
        """
        key = (program_id, participant_id)
        if key in self._in_flight:
            raise ConflictException(message="A status change is already in progress")

        new_status = RegistrationStatus(new_status)
        previous = self._statuses.get(key)
        self._statuses[key] = new_status
        self._in_flight.add(key)

        try:
            result = await self.writer(program_id, participant_id, new_status)
        except CustomException as exc:
            self._restore(key, previous)
            logger.warning(f"Status change for {key} reverted: {exc.message}")
            return StatusChange(False, previous, previous, error=exc.message)
        except Exception as exc:
            # Driver and store errors that no service translated
            self._restore(key, previous)
            logger.error(f"Status change for {key} reverted: {type(exc).__name__} - {exc}")
            return StatusChange(False, previous, previous, error=str(exc))
        finally:
            self._in_flight.discard(key)

        if isinstance(result, ProcedureResult):
            if not result.success:
                self._restore(key, previous)
                logger.warning(f"Status change for {key} reverted: {result.error}")
                return StatusChange(False, previous, previous, error=result.error)
            result = result.data

        # Adopt what the store reports when it returns the row
        stored = getattr(result, "registration_status", None)
        if stored is not None:
            self._statuses[key] = RegistrationStatus(stored)

        return StatusChange(True, self._statuses[key], previous)
