"""
Data Models Package

This package contains all Pydantic models used in the Household Ledger.
All data flowing through the engines must conform to these schemas.
"""

from household_ledger.models.household import (
    Category,
    Expense,
    ExpenseDraft,
    ExpensePeriod,
    ExpenseShare,
    ExpenseStats,
    Frequency,
    Person,
    PersonBalance,
    RecurringObligation,
    RecurringRunResult,
    SettlementInstruction,
    SplitStrategy,
    ValidationIssue,
    ValidationResult,
    utc_now,
)
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Household models
    "Category",
    "Expense",
    "ExpenseDraft",
    "ExpensePeriod",
    "ExpenseShare",
    "ExpenseStats",
    "Frequency",
    "Person",
    "PersonBalance",
    "RecurringObligation",
    "RecurringRunResult",
    "SettlementInstruction",
    "SplitStrategy",
    "ValidationIssue",
    "ValidationResult",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
