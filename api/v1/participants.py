"""Participant API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import SessionContext, get_current_admin, get_session_context
from app.models.participant import Participant
from app.models.registration import Registration
from app.schemas.participant import (
    ParticipantCreate,
    ParticipantDetailResponse,
    ParticipantProgramEntry,
    ParticipantResponse,
    ParticipantUpdate,
)
from app.services.participant_service import ParticipantService
from app.services.registration_service import RegistrationService
from core.db import get_db
from core.exceptions.base import ForbiddenException
from core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/participants", tags=["Participants"])


async def _detail(db_session: AsyncSession, participant: Participant) -> ParticipantDetailResponse:
    registrations = await Registration.get_by_participant(db_session, participant.id)
    return ParticipantDetailResponse(
        **ParticipantResponse.model_validate(participant).model_dump(),
        registrations=[
            ParticipantProgramEntry(
                program_id=r.program_id,
                program_name=r.program.name,
                registration_status=r.registration_status.value,
                registration_date=r.registration_date,
            )
            for r in registrations
        ],
    )


@router.get("/", response_model=list[ParticipantResponse])
async def list_participants(
    search: Optional[str] = Query(None, description="Search by name, contact or email"),
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> list[ParticipantResponse]:
    """List participants (Admin only)."""
    participants = await Participant.search(db_session, search)
    return [ParticipantResponse.model_validate(p) for p in participants]


@router.get("/me", response_model=ParticipantDetailResponse)
async def get_my_profile(
    session: SessionContext = Depends(get_session_context),
    db_session: AsyncSession = Depends(get_db),
) -> ParticipantDetailResponse:
    """
    Get the current user's participant profile.

    An empty profile is created the first time it is requested.
    """
    service = ParticipantService(db_session)
    participant = await service.get_or_create_for_user(session.user_id, session.email)
    return await _detail(db_session, participant)


@router.put("/me", response_model=ParticipantResponse)
async def update_my_profile(
    data: ParticipantUpdate,
    session: SessionContext = Depends(get_session_context),
    db_session: AsyncSession = Depends(get_db),
) -> ParticipantResponse:
    """Fill in or change the current user's participant profile."""
    service = ParticipantService(db_session)
    participant = await service.get_or_create_for_user(session.user_id, session.email)
    participant = await service.update(participant, data)
    return ParticipantResponse.model_validate(participant)


@router.post("/", response_model=ParticipantResponse, status_code=201)
async def create_participant(
    data: ParticipantCreate,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> ParticipantResponse:
    """
    Create a participant (Admin only).

    ``program_ids`` registers the participant in those programs as Approved.
    """
    logger.info(f"Creating participant {data.first_name} {data.last_name} (admin: {session.user_id})")
    participant = await ParticipantService(db_session).create(data)
    return ParticipantResponse.model_validate(participant)


@router.get("/{participant_id}", response_model=ParticipantDetailResponse)
async def get_participant(
    participant_id: str,
    session: SessionContext = Depends(get_session_context),
    db_session: AsyncSession = Depends(get_db),
) -> ParticipantDetailResponse:
    """Get a participant with their registrations (Admin or the profile owner)."""
    participant = await ParticipantService(db_session).get(participant_id)
    if not session.is_admin and participant.user_id != session.user_id:
        raise ForbiddenException(message="You can only view your own profile")
    return await _detail(db_session, participant)


@router.put("/{participant_id}", response_model=ParticipantResponse)
async def update_participant(
    participant_id: str,
    data: ParticipantUpdate,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> ParticipantResponse:
    """Update a participant (Admin only)."""
    service = ParticipantService(db_session)
    participant = await service.get(participant_id)
    participant = await service.update(participant, data)
    return ParticipantResponse.model_validate(participant)


@router.delete("/{participant_id}")
async def delete_participant(
    participant_id: str,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> dict:
    """Delete a participant with their registrations (Admin only)."""
    logger.info(f"Deleting participant {participant_id} (admin: {session.user_id})")
    await RegistrationService(db_session).remove_participant(participant_id)
    return {"status": "success", "message": f"Participant {participant_id} deleted"}
