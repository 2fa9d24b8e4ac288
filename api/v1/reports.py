"""Expense report and dashboard endpoints."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import SessionContext, get_current_admin, get_session_context
from app.schemas.expense import ExpenseResponse
from app.schemas.report import (
    DashboardStats,
    ExpenseReportResponse,
    GroupTotalResponse,
    ReportQuery,
)
from app.services.budget_service import ExpenseReport, GroupTotal, percentage
from app.services.dashboard_service import DashboardService
from app.services.report_service import NO_DATA_MESSAGE, ReportService
from core.db import get_db
from core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


def _groups(groups: dict[str, GroupTotal]) -> list[GroupTotalResponse]:
    return [
        GroupTotalResponse(name=name, count=g.count, total=g.total, percentage=g.percentage)
        for name, g in groups.items()
    ]


def _report_response(report: ExpenseReport) -> ExpenseReportResponse:
    return ExpenseReportResponse(
        has_data=report.has_data,
        message=None if report.has_data else NO_DATA_MESSAGE,
        timeframe_label=report.timeframe_label,
        program_label=report.program_label,
        expense_count=report.expense_count,
        total_expenses=report.total_expenses,
        average_expense=report.average_expense,
        allocated_budget=report.allocated_budget,
        remaining_budget=report.remaining_budget,
        is_over_budget=report.is_over_budget,
        budget_utilization=(
            percentage(report.total_expenses, report.allocated_budget)
            if report.allocated_budget
            else Decimal("0.0")
        ),
        by_category=_groups(report.by_category),
        by_program=_groups(report.by_program),
        expenses=[ExpenseResponse.model_validate(e) for e in report.expenses],
    )


@router.get("/expenses", response_model=ExpenseReportResponse)
async def expense_report(
    query: Annotated[ReportQuery, Query()],
    session: SessionContext = Depends(get_session_context),
    db_session: AsyncSession = Depends(get_db),
) -> ExpenseReportResponse:
    """Financial summary of the expenses matching the filters."""
    report = await DashboardService(db_session).expense_report(query)
    return _report_response(report)


@router.get("/expenses/pdf")
async def expense_report_pdf(
    query: Annotated[ReportQuery, Query()],
    session: SessionContext = Depends(get_session_context),
    db_session: AsyncSession = Depends(get_db),
) -> StreamingResponse:
    """Download the expense report as a PDF."""
    report = await DashboardService(db_session).expense_report(query)
    generated_at = datetime.now(timezone.utc)
    pdf = ReportService.generate_expense_report_pdf(report, generated_at=generated_at)
    filename = ReportService.filename(generated_at)
    logger.info(f"Expense report PDF requested by {session.user_id}")
    return StreamingResponse(
        pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/expenses/csv")
async def expense_report_csv(
    query: Annotated[ReportQuery, Query()],
    session: SessionContext = Depends(get_session_context),
    db_session: AsyncSession = Depends(get_db),
) -> Response:
    """Download the detailed expense listing as CSV."""
    report = await DashboardService(db_session).expense_report(query)
    filename = ReportService.filename().replace(".pdf", ".csv")
    return Response(
        content=ReportService.generate_expense_report_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/dashboard", response_model=DashboardStats)
async def dashboard(
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> DashboardStats:
    """Headline totals for the admin dashboard (Admin only)."""
    return await DashboardService(db_session).stats()
