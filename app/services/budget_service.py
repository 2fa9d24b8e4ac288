"""
Budget aggregation over programs and expenses.

Every function here is pure: inputs are only read, nothing is written back
and the store is never touched, so calling any of them twice on the same
snapshot gives the same answer. Amounts stay ``Decimal`` end to end.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Iterator, Mapping, Optional, Protocol, Sequence

ZERO = Decimal("0.00")
TWO_PLACES = Decimal("0.01")
ONE_PLACE = Decimal("0.1")

UNCATEGORIZED = "Uncategorized"
NO_PROGRAM = "No Program"
ALL = "all"


class ExpenseLike(Protocol):
    program_id: Optional[str]
    amount: Decimal
    date: date
    category: str


class ProgramLike(Protocol):
    id: str
    name: str
    budget: Decimal


def to_decimal(value) -> Decimal:
    """Coerce a stored amount to Decimal without going through float."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize(value: Decimal) -> Decimal:
    return to_decimal(value).quantize(TWO_PLACES)


def total_expenses(expenses: Iterable[ExpenseLike]) -> Decimal:
    """Exact sum of ``amount`` over the given (already filtered) expenses."""
    return quantize(sum((to_decimal(e.amount) for e in expenses), ZERO))


def allocated_budget(
    programs: Iterable[ProgramLike], program_id: Optional[str] = None
) -> Decimal:
    """Budget of one program, or the sum over all programs when none is selected."""
    if program_id and program_id != ALL:
        for program in programs:
            if program.id == program_id:
                return quantize(program.budget)
        return ZERO
    return quantize(sum((to_decimal(p.budget) for p in programs), ZERO))


def remaining_budget(allocated, expenses: Iterable[ExpenseLike]) -> Decimal:
    """``allocated - total_expenses``. Negative means over budget."""
    return quantize(to_decimal(allocated) - total_expenses(expenses))


def average_expense(expenses: Sequence[ExpenseLike]) -> Decimal:
    if not expenses:
        return ZERO
    return quantize(total_expenses(expenses) / len(expenses))


def percentage(part, whole) -> Decimal:
    """``part / whole * 100`` to one decimal; a zero whole is treated as 1."""
    denominator = to_decimal(whole) or Decimal(1)
    return (to_decimal(part) / denominator * 100).quantize(ONE_PLACE)


@dataclass(frozen=True)
class BudgetSummary:
    allocated: Decimal
    spent: Decimal
    remaining: Decimal

    @property
    def is_over_budget(self) -> bool:
        return self.remaining < 0


def summarize_budget(allocated, expenses: Iterable[ExpenseLike]) -> BudgetSummary:
    expenses = list(expenses)
    return BudgetSummary(
        allocated=quantize(allocated),
        spent=total_expenses(expenses),
        remaining=remaining_budget(allocated, expenses),
    )


@dataclass(frozen=True)
class Timeframe:
    """
    Calendar window for expense filtering.

    Matching compares the calendar month/year of the expense date, so
    ``Timeframe.for_month(2024, 5)`` matches every expense dated in May 2024
    whatever the day.
    """

    kind: str = ALL  # "all" | "month" | "year"
    year: Optional[int] = None
    month: Optional[int] = None

    def __post_init__(self):
        if self.kind not in (ALL, "month", "year"):
            raise ValueError(f"Unknown timeframe: {self.kind}")
        if self.kind in ("month", "year") and self.year is None:
            raise ValueError(f"A {self.kind} timeframe needs a year")
        if self.kind == "month" and not (self.month and 1 <= self.month <= 12):
            raise ValueError("Month must be between 1 and 12")

    @classmethod
    def all_time(cls) -> "Timeframe":
        return cls(ALL)

    @classmethod
    def for_month(cls, year: int, month: int) -> "Timeframe":
        return cls("month", year=year, month=month)

    @classmethod
    def for_year(cls, year: int) -> "Timeframe":
        return cls("year", year=year)

    def matches(self, value: date) -> bool:
        if self.kind == ALL:
            return True
        if self.kind == "year":
            return value.year == self.year
        return value.year == self.year and value.month == self.month

    @property
    def label(self) -> str:
        if self.kind == ALL:
            return "All Time"
        if self.kind == "year":
            return str(self.year)
        return f"{calendar.month_name[self.month]} {self.year}"


def filter_expenses(
    expenses: Iterable[ExpenseLike],
    program_id: Optional[str] = None,
    category: Optional[str] = None,
    timeframe: Optional[Timeframe] = None,
) -> Iterator[ExpenseLike]:
    """Lazily yield the expenses matching every given filter. "all" means no filter."""
    for expense in expenses:
        if program_id and program_id != ALL and expense.program_id != program_id:
            continue
        if category and category != ALL and expense.category != category:
            continue
        if timeframe is not None and not timeframe.matches(expense.date):
            continue
        yield expense


@dataclass(frozen=True)
class GroupTotal:
    count: int
    total: Decimal
    percentage: Decimal


def group_expenses(
    expenses: Iterable[ExpenseLike],
    key: str = "category",
    program_names: Optional[Mapping[str, str]] = None,
) -> dict[str, GroupTotal]:
    """
    Group expenses by category or program name into count/total/percentage.

    Percentages are relative to the total of the given expenses. Groups are
    ordered by total descending, then by name.
    """
    if key not in ("category", "program"):
        raise ValueError(f"Cannot group expenses by {key!r}")

    program_names = program_names or {}
    counts: dict[str, int] = {}
    totals: dict[str, Decimal] = {}

    for expense in expenses:
        if key == "category":
            group = expense.category or UNCATEGORIZED
        else:
            group = program_names.get(expense.program_id, NO_PROGRAM)
        counts[group] = counts.get(group, 0) + 1
        totals[group] = totals.get(group, ZERO) + to_decimal(expense.amount)

    grand_total = sum(totals.values(), ZERO)
    ordered = sorted(totals, key=lambda g: (-totals[g], g))
    return {
        group: GroupTotal(
            count=counts[group],
            total=quantize(totals[group]),
            percentage=percentage(totals[group], grand_total),
        )
        for group in ordered
    }


@dataclass(frozen=True)
class ReportFilters:
    program_id: Optional[str] = None
    category: Optional[str] = None
    timeframe: Timeframe = field(default_factory=Timeframe.all_time)


@dataclass
class ExpenseReport:
    """Financial summary of the expenses matching a set of filters."""

    filters: ReportFilters
    program_label: str
    expenses: list
    program_names: dict[str, str]
    total_expenses: Decimal
    average_expense: Decimal
    allocated_budget: Decimal
    remaining_budget: Decimal
    by_category: dict[str, GroupTotal]
    by_program: dict[str, GroupTotal]

    @property
    def expense_count(self) -> int:
        return len(self.expenses)

    @property
    def has_data(self) -> bool:
        return bool(self.expenses)

    @property
    def is_over_budget(self) -> bool:
        return self.remaining_budget < 0

    @property
    def timeframe_label(self) -> str:
        return self.filters.timeframe.label


def build_expense_report(
    programs: Sequence[ProgramLike],
    expenses: Iterable[ExpenseLike],
    filters: Optional[ReportFilters] = None,
) -> ExpenseReport:
    """Filter the expenses and compute every figure the report shows."""
    filters = filters or ReportFilters()
    program_names = {p.id: p.name for p in programs}

    matched = sorted(
        filter_expenses(
            expenses,
            program_id=filters.program_id,
            category=filters.category,
            timeframe=filters.timeframe,
        ),
        key=lambda e: e.date,
        reverse=True,
    )

    if not filters.program_id or filters.program_id == ALL:
        program_label = "All programs"
    else:
        program_label = program_names.get(filters.program_id, "")

    allocated = allocated_budget(programs, filters.program_id)
    return ExpenseReport(
        filters=filters,
        program_label=program_label,
        expenses=matched,
        program_names=program_names,
        total_expenses=total_expenses(matched),
        average_expense=average_expense(matched),
        allocated_budget=allocated,
        remaining_budget=remaining_budget(allocated, matched),
        by_category=group_expenses(matched, "category"),
        by_program=group_expenses(matched, "program", program_names),
    )
