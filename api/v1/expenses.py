"""Expense API endpoints."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import SessionContext, get_current_admin, get_session_context
from app.models.expense import Expense
from app.models.program import Program
from app.schemas.expense import (
    ExpenseCreate,
    ExpenseListResponse,
    ExpenseResponse,
    ExpenseUpdate,
)
from app.schemas.report import ReportQuery
from app.services.budget_service import filter_expenses, total_expenses
from app.services.dashboard_service import filters_from_query
from core.db import get_db
from core.exceptions.base import NotFoundException, ValidationException
from core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/expenses", tags=["Expenses"])


async def _check_program(db_session: AsyncSession, program_id: Optional[str]) -> None:
    if program_id and not await Program.get_by_id(db_session, program_id):
        raise ValidationException(message=f"Program {program_id} not found")


async def _get_expense_or_404(db_session: AsyncSession, expense_id: str) -> Expense:
    expense = await Expense.get_by_id(db_session, expense_id)
    if not expense:
        raise NotFoundException(f"Expense {expense_id} not found")
    return expense


@router.get("/", response_model=ExpenseListResponse)
async def list_expenses(
    query: Annotated[ReportQuery, Query()],
    session: SessionContext = Depends(get_session_context),
    db_session: AsyncSession = Depends(get_db),
) -> ExpenseListResponse:
    """List expenses filtered by program, category and timeframe, newest first."""
    filters = filters_from_query(query)
    expenses = list(
        filter_expenses(
            await Expense.get_all(db_session),
            program_id=filters.program_id,
            category=filters.category,
            timeframe=filters.timeframe,
        )
    )
    return ExpenseListResponse(
        items=[ExpenseResponse.model_validate(e) for e in expenses],
        total=len(expenses),
        total_amount=total_expenses(expenses),
    )


@router.get("/categories", response_model=list[str])
async def list_categories(
    session: SessionContext = Depends(get_session_context),
    db_session: AsyncSession = Depends(get_db),
) -> list[str]:
    """Distinct expense categories in use."""
    return await Expense.get_categories(db_session)


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: str,
    session: SessionContext = Depends(get_session_context),
    db_session: AsyncSession = Depends(get_db),
) -> ExpenseResponse:
    """Get expense by ID."""
    return ExpenseResponse.model_validate(await _get_expense_or_404(db_session, expense_id))


@router.post("/", response_model=ExpenseResponse, status_code=201)
async def create_expense(
    data: ExpenseCreate,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> ExpenseResponse:
    """Record an expense (Admin only)."""
    await _check_program(db_session, data.program_id)
    expense = await Expense.create_expense(db_session, **data.model_dump())
    logger.info(
        f"Recorded expense {expense.id} of {expense.amount} (admin: {session.user_id})"
    )
    return ExpenseResponse.model_validate(expense)


@router.put("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: str,
    data: ExpenseUpdate,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> ExpenseResponse:
    """Update an expense (Admin only)."""
    expense = await _get_expense_or_404(db_session, expense_id)
    changes = data.model_dump(exclude_unset=True)
    await _check_program(db_session, changes.get("program_id"))

    for field, value in changes.items():
        # program_id and notes may be cleared; other fields only replaced
        if value is not None or field in ("program_id", "notes"):
            setattr(expense, field, value)

    await db_session.commit()
    await db_session.refresh(expense)
    logger.info(f"Updated expense {expense_id} (admin: {session.user_id})")
    return ExpenseResponse.model_validate(expense)


@router.delete("/{expense_id}")
async def delete_expense(
    expense_id: str,
    session: SessionContext = Depends(get_current_admin),
    db_session: AsyncSession = Depends(get_db),
) -> dict:
    """Delete an expense (Admin only)."""
    expense = await _get_expense_or_404(db_session, expense_id)
    await db_session.delete(expense)
    await db_session.commit()
    logger.info(f"Deleted expense {expense_id} (admin: {session.user_id})")
    return {"status": "success", "message": f"Expense {expense_id} deleted"}
