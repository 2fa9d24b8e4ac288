"""Feedback schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from app.models.feedback import FeedbackCategory, FeedbackStatus
from app.schemas.base import BaseSchema


class FeedbackCreate(BaseSchema):
    message: str = Field(..., min_length=1, max_length=5000)
    rating: Optional[int] = Field(None, ge=1, le=5)
    category: FeedbackCategory = FeedbackCategory.GENERAL


class FeedbackStatusUpdate(BaseSchema):
    status: FeedbackStatus


class FeedbackResponse(BaseSchema):
    id: str
    user_id: Optional[str] = None
    message: str
    rating: Optional[int] = None
    category: FeedbackCategory
    status: FeedbackStatus
    created_at: datetime
    updated_at: datetime
