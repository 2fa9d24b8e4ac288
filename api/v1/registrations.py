"""Registration review and status endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import SessionContext, get_current_admin, get_session_context
from app.models.participant import Participant
from app.models.registration import Registration, RegistrationStatus
from app.schemas.registration import (
    MyStatusesResponse,
    RegistrationListResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
    registration_response,
)
from app.services.registration_service import RegistrationService
from core.db import get_db
from core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/registrations", tags=["Registrations"])


@router.post("/update-status", response_model=StatusUpdateResponse)
async def update_status(
    data: StatusUpdateRequest,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> StatusUpdateResponse:
    """
    Change the status of an existing registration (Admin only).

    Never creates a registration; a missing pair is a 404.
    """
    logger.info(
        f"Status update {data.program_id}/{data.participant_id} -> {data.status} "
        f"(admin: {session.user_id})"
    )
    registration = await RegistrationService(db_session).set_status(
        data.program_id, data.participant_id, data.status
    )
    return StatusUpdateResponse(
        success=True,
        message=f"Registration status updated to {registration.registration_status.value}",
        data=registration_response(registration),
        current_status=registration.registration_status,
    )


@router.get("/requests", response_model=RegistrationListResponse)
async def list_requests(
    status: Optional[RegistrationStatus] = Query(None),
    program_id: Optional[str] = Query(None),
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> RegistrationListResponse:
    """Registration requests across programs for review (Admin only)."""
    registrations = await Registration.get_requests(
        db_session, status=status, program_id=program_id
    )
    return RegistrationListResponse(
        items=[registration_response(r) for r in registrations],
        total=len(registrations),
    )


@router.get("/my", response_model=RegistrationListResponse)
async def my_registrations(
    session: SessionContext = Depends(get_session_context),
    db_session: AsyncSession = Depends(get_db),
) -> RegistrationListResponse:
    """The current user's registrations, newest first."""
    participant = await Participant.get_by_user_id(db_session, session.user_id)
    if not participant:
        return RegistrationListResponse(items=[], total=0)

    registrations = await Registration.get_by_participant(db_session, participant.id)
    return RegistrationListResponse(
        items=[registration_response(r) for r in registrations],
        total=len(registrations),
    )


@router.get("/my/statuses", response_model=MyStatusesResponse)
async def my_statuses(
    session: SessionContext = Depends(get_session_context),
    db_session: AsyncSession = Depends(get_db),
) -> MyStatusesResponse:
    """Status per program id for the current user."""
    statuses = await RegistrationService(db_session).statuses_for_user(session.user_id)
    return MyStatusesResponse(statuses=statuses)


@router.post("/{registration_id}/approve", response_model=StatusUpdateResponse)
async def approve_registration(
    registration_id: str,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> StatusUpdateResponse:
    """Approve a registration (Admin only)."""
    registration = await RegistrationService(db_session).approve(registration_id)
    return StatusUpdateResponse(
        success=True,
        message="Registration approved",
        data=registration_response(registration),
        current_status=registration.registration_status,
    )


@router.post("/{registration_id}/reject", response_model=StatusUpdateResponse)
async def reject_registration(
    registration_id: str,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> StatusUpdateResponse:
    """Reject a registration (Admin only)."""
    registration = await RegistrationService(db_session).reject(registration_id)
    return StatusUpdateResponse(
        success=True,
        message="Registration rejected",
        data=registration_response(registration),
        current_status=registration.registration_status,
    )
