"""
Expense Query Execution

Period filters and headline statistics over the ledger.

DESIGN DECISION: Period boundaries are computed here, deterministically,
from a reference day. Storage only ever sees a half-open
[date_from, date_to) range, so every backend filters the same way.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional

from household_ledger.models.household import (
    Expense,
    ExpensePeriod,
    ExpenseStats,
    utc_now,
)
from household_ledger.services.storage import LedgerStorageInterface

Bounds = tuple[Optional[datetime], Optional[datetime]]


def _month_start(year: int, month: int) -> datetime:
    return datetime.combine(date(year, month, 1), time.min, tzinfo=timezone.utc)


def _next_month(year: int, month: int) -> tuple[int, int]:
    return (year + 1, 1) if month == 12 else (year, month + 1)


def period_bounds(period: ExpensePeriod, today: date) -> Bounds:
    """
    Half-open UTC range covering a reporting period.

    Returns (None, None) for ExpensePeriod.ALL.
    """
    if period == ExpensePeriod.THIS_MONTH:
        start = _month_start(today.year, today.month)
        end = _month_start(*_next_month(today.year, today.month))
        return start, end

    if period == ExpensePeriod.LAST_MONTH:
        year, month = (today.year - 1, 12) if today.month == 1 else (today.year, today.month - 1)
        return _month_start(year, month), _month_start(today.year, today.month)

    if period == ExpensePeriod.THIS_YEAR:
        return _month_start(today.year, 1), _month_start(today.year + 1, 1)

    return None, None


def describe_period(period: ExpensePeriod, today: date) -> str:
    """Human-readable label for a period."""
    start, end = period_bounds(period, today)
    if start is None:
        return "all time"
    if period == ExpensePeriod.THIS_YEAR:
        return f"in {start.year}"
    return f"in {start.strftime('%B %Y')}"


class ExpenseQueryExecutor:
    """
    Executes period queries against the ledger store.

    GUARANTEES:
    - Only returns real data from storage
    - Totals are exact Decimal sums, never rounded
    """

    def __init__(self, storage: LedgerStorageInterface):
        self._storage = storage

    async def list_expenses(
        self,
        period: ExpensePeriod = ExpensePeriod.ALL,
        today: Optional[date] = None,
    ) -> list[Expense]:
        """List expenses in a period, newest first."""
        today = today or utc_now().date()
        date_from, date_to = period_bounds(period, today)
        return await self._storage.list_expenses(date_from=date_from, date_to=date_to)

    async def stats(self, today: Optional[date] = None) -> ExpenseStats:
        """Total over all expenses and over the current month."""
        today = today or utc_now().date()
        expenses = await self._storage.list_expenses()
        month_start, month_end = period_bounds(ExpensePeriod.THIS_MONTH, today)

        total = Decimal("0")
        this_month = Decimal("0")
        for expense in expenses:
            total += expense.amount
            if month_start <= expense.date < month_end:
                this_month += expense.amount

        return ExpenseStats(
            total=total,
            this_month=this_month,
            expense_count=len(expenses),
        )
