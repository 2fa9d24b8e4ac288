"""Program API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import SessionContext, get_current_admin, get_session_context
from app.models.expense import Expense
from app.models.program import Program, ProgramStatus
from app.models.registration import Registration, RegistrationStatus
from app.schemas.program import (
    ProgramCreate,
    ProgramDetailResponse,
    ProgramResponse,
    ProgramUpdate,
)
from app.schemas.registration import (
    AddParticipantsRequest,
    AddParticipantsResponse,
    ApplyRequest,
    ProgramRosterResponse,
    RegistrationListResponse,
    RegistrationResponse,
    RosterEntry,
    registration_response,
)
from app.services.budget_service import summarize_budget
from app.services.file_service import FileService, get_file_service
from app.services.registration_service import RegistrationService
from core.db import get_db
from core.exceptions.base import NotFoundException
from core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/programs", tags=["Programs"])


async def _get_program_or_404(db_session: AsyncSession, program_id: str) -> Program:
    program = await Program.get_by_id(db_session, program_id)
    if not program:
        raise NotFoundException(f"Program {program_id} not found")
    return program


@router.get("/", response_model=list[ProgramResponse])
async def list_programs(
    status: Optional[ProgramStatus] = Query(None),
    search: Optional[str] = Query(None, description="Search name, location or description"),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1900, le=9999),
    db_session: AsyncSession = Depends(get_db),
) -> list[ProgramResponse]:
    """
    List programs, newest date first.

    Public endpoint - no authentication required.
    """
    programs = await Program.search(
        db_session, status=status, term=search, month=month, year=year
    )
    return [ProgramResponse.model_validate(p) for p in programs]


@router.post("/join", response_model=RegistrationResponse, status_code=201)
async def join_program(
    data: ApplyRequest,
    session: SessionContext = Depends(get_session_context),
    db_session: AsyncSession = Depends(get_db),
) -> RegistrationResponse:
    """
    Apply to a program with the current user's participant profile.

    The registration starts as Pending until an admin reviews it.
    """
    service = RegistrationService(db_session)
    registration = await service.apply_for_user(session.user_id, data.program_id)
    return registration_response(registration)


@router.get("/{program_id}", response_model=ProgramDetailResponse)
async def get_program(
    program_id: str,
    db_session: AsyncSession = Depends(get_db),
) -> ProgramDetailResponse:
    """Get a program with its budget position and registration counts."""
    program = await _get_program_or_404(db_session, program_id)
    expenses = await Expense.get_all(db_session, program_id=program_id)
    summary = summarize_budget(program.budget, expenses)
    counts = await Registration.count_by_status(db_session, program_id)

    return ProgramDetailResponse(
        **ProgramResponse.model_validate(program).model_dump(),
        total_expenses=summary.spent,
        remaining_budget=summary.remaining,
        is_over_budget=summary.is_over_budget,
        participant_count=sum(counts.values()),
        registration_counts=counts,
    )


@router.post("/", response_model=ProgramResponse, status_code=201)
async def create_program(
    data: ProgramCreate,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> ProgramResponse:
    """Create a new program (Admin only)."""
    logger.info(f"Creating program: {data.name} (admin: {session.user_id})")
    program = await Program.create_program(db_session, **data.model_dump())
    return ProgramResponse.model_validate(program)


@router.put("/{program_id}", response_model=ProgramResponse)
async def update_program(
    program_id: str,
    data: ProgramUpdate,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> ProgramResponse:
    """Update a program (Admin only)."""
    logger.info(f"Updating program {program_id} (admin: {session.user_id})")
    program = await _get_program_or_404(db_session, program_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(program, field, value)

    await db_session.commit()
    await db_session.refresh(program)
    return ProgramResponse.model_validate(program)


@router.delete("/{program_id}")
async def delete_program(
    program_id: str,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
    file_service: FileService = Depends(get_file_service),
) -> dict:
    """Delete a program with its expenses and registrations (Admin only)."""
    logger.info(f"Deleting program {program_id} (admin: {session.user_id})")
    program = await _get_program_or_404(db_session, program_id)
    file_url = program.file_url

    await RegistrationService(db_session).remove_program(program_id)
    await file_service.delete_by_url(file_url)

    return {"status": "success", "message": f"Program {program_id} deleted"}


@router.post("/{program_id}/attachment", response_model=ProgramResponse)
async def upload_attachment(
    program_id: str,
    file: UploadFile = File(...),
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
    file_service: FileService = Depends(get_file_service),
) -> ProgramResponse:
    """Attach a PDF or image to a program, replacing any previous one (Admin only)."""
    program = await _get_program_or_404(db_session, program_id)

    relative_path = await file_service.save_program_attachment(file, program_id)
    previous_url = program.file_url
    program.file_url = file_service.public_url(relative_path)
    await db_session.commit()
    await db_session.refresh(program)
    await file_service.delete_by_url(previous_url)

    return ProgramResponse.model_validate(program)


@router.post("/{program_id}/participants", response_model=AddParticipantsResponse)
async def add_participants(
    program_id: str,
    data: AddParticipantsRequest,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> AddParticipantsResponse:
    """
    Register participants in a program as Approved (Admin only).

    Each participant succeeds or fails on its own; failures are listed in
    ``errors`` and the rest are still added.
    """
    service = RegistrationService(db_session)
    result = await service.add_participants(program_id, data.participant_ids)
    return AddParticipantsResponse(
        added=result.added, errors=result.errors, partial=result.partial
    )


@router.get("/{program_id}/registrations", response_model=RegistrationListResponse)
async def list_program_registrations(
    program_id: str,
    status: Optional[RegistrationStatus] = Query(None),
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> RegistrationListResponse:
    """Registrations of a program, newest first (Admin only)."""
    service = RegistrationService(db_session)
    registrations = await service.program_registrations(program_id, status)
    return RegistrationListResponse(
        items=[registration_response(r) for r in registrations],
        total=len(registrations),
    )


@router.get("/{program_id}/roster", response_model=ProgramRosterResponse)
async def get_roster(
    program_id: str,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> ProgramRosterResponse:
    """Participants of a program with their registration status (Admin only)."""
    program = await _get_program_or_404(db_session, program_id)
    registrations = await Registration.get_by_program(db_session, program_id)
    counts = await Registration.count_by_status(db_session, program_id)

    return ProgramRosterResponse(
        program_id=program.id,
        program_name=program.name,
        items=[
            RosterEntry(
                participant_id=r.participant_id,
                first_name=r.participant.first_name,
                last_name=r.participant.last_name,
                age=r.participant.age,
                contact=r.participant.contact,
                email=r.participant.email,
                registration_status=r.registration_status,
                registration_date=r.registration_date,
            )
            for r in registrations
        ],
        counts=counts,
    )
