"""Registration-related schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from app.models.registration import RegistrationStatus
from app.schemas.base import BaseSchema


class ApplyRequest(BaseSchema):
    """Self-service application; the participant is resolved from the session."""

    program_id: str


class AddParticipantsRequest(BaseSchema):
    """Admin adds participants to a program as Approved."""

    participant_ids: list[str] = Field(..., min_length=1)


class AddParticipantsResponse(BaseSchema):
    added: list[str]
    errors: list[str]
    partial: bool


class StatusUpdateRequest(BaseSchema):
    program_id: str
    participant_id: str
    status: str


class RegistrationResponse(BaseSchema):
    """Registration with denormalized participant and program names."""

    id: str
    program_id: str
    participant_id: str
    registration_status: RegistrationStatus
    registration_date: datetime
    updated_at: datetime
    participant_name: Optional[str] = None
    program_name: Optional[str] = None


class RegistrationListResponse(BaseSchema):
    items: list[RegistrationResponse]
    total: int


class StatusUpdateResponse(BaseSchema):
    success: bool
    message: str
    data: Optional[RegistrationResponse] = None
    current_status: Optional[RegistrationStatus] = None


class RosterEntry(BaseSchema):
    """Participant on a program roster."""

    participant_id: str
    first_name: str
    last_name: str
    age: Optional[int] = None
    contact: str
    email: Optional[str] = None
    registration_status: RegistrationStatus
    registration_date: datetime


class ProgramRosterResponse(BaseSchema):
    program_id: str
    program_name: str
    items: list[RosterEntry]
    counts: dict[str, int]


class MyStatusesResponse(BaseSchema):
    """Current user's status per program id."""

    statuses: dict[str, RegistrationStatus]


def registration_response(registration) -> RegistrationResponse:
    """Build a response from a registration loaded with participant and program."""
    return RegistrationResponse(
        id=registration.id,
        program_id=registration.program_id,
        participant_id=registration.participant_id,
        registration_status=registration.registration_status,
        registration_date=registration.registration_date,
        updated_at=registration.updated_at,
        participant_name=(
            registration.participant.full_name if registration.participant else None
        ),
        program_name=registration.program.name if registration.program else None,
    )
