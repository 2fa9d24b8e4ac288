"""Expense-related schemas."""

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import Field

from app.schemas.base import BaseSchema


class ExpenseCreate(BaseSchema):
    """Record a new expense."""

    program_id: Optional[str] = None
    description: str = Field(..., min_length=1, max_length=500)
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    date: dt.date
    category: str = Field(..., min_length=1, max_length=100)
    notes: Optional[str] = None


class ExpenseUpdate(BaseSchema):
    """Partial expense update."""

    program_id: Optional[str] = None
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    date: Optional[dt.date] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    notes: Optional[str] = None


class ExpenseResponse(BaseSchema):
    id: str
    program_id: Optional[str] = None
    description: str
    amount: Decimal
    date: dt.date
    category: str
    notes: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime


class ExpenseListResponse(BaseSchema):
    items: list[ExpenseResponse]
    total: int
    total_amount: Decimal
