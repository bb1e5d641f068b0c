"""Expense validation package."""

from household_ledger.validation.validator import ExpenseValidator

__all__ = ["ExpenseValidator"]
