"""Program-related schemas."""

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import Field

from app.models.program import ProgramStatus
from app.schemas.base import BaseSchema


class ProgramCreate(BaseSchema):
    """Create a new program."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    date: dt.date
    time: str = Field("", max_length=100)
    location: str = Field("", max_length=255)
    budget: Decimal = Field(Decimal("0.00"), ge=0, max_digits=12, decimal_places=2)
    status: ProgramStatus = ProgramStatus.PLANNING


class ProgramUpdate(BaseSchema):
    """Update a program. Omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=255)
    budget: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    status: Optional[ProgramStatus] = None


class ProgramResponse(BaseSchema):
    """Program response."""

    id: str
    name: str
    description: str
    date: dt.date
    time: str
    location: str
    budget: Decimal
    status: ProgramStatus
    file_url: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime


class ProgramDetailResponse(ProgramResponse):
    """Program with its budget position and registration counts."""

    total_expenses: Decimal
    remaining_budget: Decimal
    is_over_budget: bool
    participant_count: int
    registration_counts: dict[str, int]
