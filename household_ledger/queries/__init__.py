"""Query execution package."""

from household_ledger.queries.executor import (
    ExpenseQueryExecutor,
    describe_period,
    period_bounds,
)

__all__ = ["ExpenseQueryExecutor", "describe_period", "period_bounds"]
