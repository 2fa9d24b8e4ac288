"""Loads programs and expenses from the store for reports and the dashboard."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.expense import Expense
from app.models.participant import Participant
from app.models.program import Program, ProgramStatus
from app.models.registration import Registration, RegistrationStatus
from app.schemas.report import DashboardStats, ReportQuery
from app.services.budget_service import (
    ExpenseReport,
    ReportFilters,
    Timeframe,
    allocated_budget,
    build_expense_report,
    remaining_budget,
    total_expenses,
)


def filters_from_query(query: ReportQuery) -> ReportFilters:
    if query.timeframe == "month":
        timeframe = Timeframe.for_month(query.year, query.month)
    elif query.timeframe == "year":
        timeframe = Timeframe.for_year(query.year)
    else:
        timeframe = Timeframe.all_time()
    return ReportFilters(
        program_id=query.program_id, category=query.category, timeframe=timeframe
    )


class DashboardService:
    """Read-only snapshot queries feeding the budget functions."""

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def expense_report(self, query: ReportQuery) -> ExpenseReport:
        programs = await Program.get_all(self.db_session)
        expenses = await Expense.get_all(self.db_session)
        return build_expense_report(programs, expenses, filters_from_query(query))

    async def stats(self) -> DashboardStats:
        programs = await Program.get_all(self.db_session)
        expenses = await Expense.get_all(self.db_session)
        counts = await Registration.count_by_status(self.db_session)
        allocated = allocated_budget(programs)

        active = await self.db_session.execute(
            select(func.count(Program.id)).where(Program.status == ProgramStatus.ACTIVE)
        )

        return DashboardStats(
            total_programs=len(programs),
            active_programs=active.scalar_one(),
            total_participants=await Participant.count(self.db_session),
            total_budget=allocated,
            total_spent=total_expenses(expenses),
            remaining_budget=remaining_budget(allocated, expenses),
            pending_registrations=counts[RegistrationStatus.PENDING.value],
            registration_counts=counts,
        )
