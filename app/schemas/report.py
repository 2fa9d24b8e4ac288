"""Report and dashboard schemas."""

from decimal import Decimal
from typing import Literal, Optional

from pydantic import Field, model_validator

from app.schemas.base import BaseSchema
from app.schemas.expense import ExpenseResponse


class ReportQuery(BaseSchema):
    """Filters shared by the expense report endpoints."""

    program_id: Optional[str] = None
    category: Optional[str] = None
    timeframe: Literal["all", "month", "year"] = "all"
    year: Optional[int] = Field(None, ge=1900, le=9999)
    month: Optional[int] = Field(None, ge=1, le=12)

    @model_validator(mode="after")
    def validate_timeframe(self) -> "ReportQuery":
        if self.timeframe in ("month", "year") and self.year is None:
            raise ValueError(f"year is required for a {self.timeframe} timeframe")
        if self.timeframe == "month" and self.month is None:
            raise ValueError("month is required for a month timeframe")
        return self


class GroupTotalResponse(BaseSchema):
    name: str
    count: int
    total: Decimal
    percentage: Decimal


class ExpenseReportResponse(BaseSchema):
    """JSON form of the expense report."""

    has_data: bool
    message: Optional[str] = None
    timeframe_label: str
    program_label: str
    expense_count: int
    total_expenses: Decimal
    average_expense: Decimal
    allocated_budget: Decimal
    remaining_budget: Decimal
    is_over_budget: bool
    budget_utilization: Decimal
    by_category: list[GroupTotalResponse]
    by_program: list[GroupTotalResponse]
    expenses: list[ExpenseResponse]


class DashboardStats(BaseSchema):
    """Headline numbers for the admin dashboard."""

    total_programs: int
    active_programs: int
    total_participants: int
    total_budget: Decimal
    total_spent: Decimal
    remaining_budget: Decimal
    pending_registrations: int
    registration_counts: dict[str, int]
