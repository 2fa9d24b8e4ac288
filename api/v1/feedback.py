"""Feedback endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import SessionContext, get_current_admin, get_session_context
from app.models.feedback import Feedback, FeedbackCategory, FeedbackStatus
from app.schemas.feedback import FeedbackCreate, FeedbackResponse, FeedbackStatusUpdate
from core.db import get_db
from core.exceptions.base import NotFoundException
from core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/feedback", tags=["Feedback"])


@router.post("/", response_model=FeedbackResponse, status_code=201)
async def submit_feedback(
    data: FeedbackCreate,
    session: SessionContext = Depends(get_session_context),
    db_session: AsyncSession = Depends(get_db),
) -> FeedbackResponse:
    """Submit feedback about the portal."""
    feedback = await Feedback.create_feedback(
        db_session, user_id=session.user_id, **data.model_dump()
    )
    logger.info(f"Feedback {feedback.id} submitted by {session.user_id}")
    return FeedbackResponse.model_validate(feedback)


@router.get("/", response_model=list[FeedbackResponse])
async def list_feedback(
    category: Optional[FeedbackCategory] = Query(None),
    status: Optional[FeedbackStatus] = Query(None),
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> list[FeedbackResponse]:
    """List feedback, newest first (Admin only)."""
    items = await Feedback.get_filtered(db_session, category=category, status=status)
    return [FeedbackResponse.model_validate(f) for f in items]


@router.patch("/{feedback_id}", response_model=FeedbackResponse)
async def update_feedback_status(
    feedback_id: str,
    data: FeedbackStatusUpdate,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> FeedbackResponse:
    """Change the review status of a feedback entry (Admin only)."""
    feedback = await Feedback.get_by_id(db_session, feedback_id)
    if not feedback:
        raise NotFoundException(f"Feedback {feedback_id} not found")

    feedback.status = data.status
    await db_session.commit()
    await db_session.refresh(feedback)
    return FeedbackResponse.model_validate(feedback)
