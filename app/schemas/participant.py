"""Participant-related schemas."""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.schemas.base import BaseSchema

# Digits with optional leading "+", spaces or dashes; 7-15 digits total
CONTACT_PATTERN = r"^\+?[0-9][0-9 \-]{5,19}[0-9]$"


def _check_contact_digits(v: Optional[str]) -> Optional[str]:
    if v:
        digits = sum(c.isdigit() for c in v)
        if not 7 <= digits <= 15:
            raise ValueError("Contact number must have between 7 and 15 digits")
    return v


class ParticipantCreate(BaseSchema):
    """Admin-created participant."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    age: int = Field(..., ge=1, le=120)
    contact: str = Field(..., pattern=CONTACT_PATTERN)
    email: Optional[EmailStr] = None
    address: str = Field(..., min_length=1)
    user_id: Optional[str] = None
    # Programs to register the new participant in (status Approved)
    program_ids: list[str] = Field(default_factory=list)

    check_contact_digits = field_validator("contact")(_check_contact_digits)


class ParticipantUpdate(BaseSchema):
    """Partial participant update."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    age: Optional[int] = Field(None, ge=1, le=120)
    contact: Optional[str] = Field(None, pattern=CONTACT_PATTERN)
    email: Optional[EmailStr] = None
    address: Optional[str] = None

    check_contact_digits = field_validator("contact")(_check_contact_digits)


class ParticipantResponse(BaseSchema):
    """Participant response."""

    id: str
    user_id: Optional[str] = None
    first_name: str
    last_name: str
    age: Optional[int] = None
    contact: str
    email: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ParticipantProgramEntry(BaseSchema):
    """A program a participant is registered in."""

    program_id: str
    program_name: str
    registration_status: str
    registration_date: datetime


class ParticipantDetailResponse(ParticipantResponse):
    registrations: list[ParticipantProgramEntry] = Field(default_factory=list)
