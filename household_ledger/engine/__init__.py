"""Allocation, settlement and recurrence engines."""

from household_ledger.engine.allocation import AllocationEngine, InvalidAllocationRequest
from household_ledger.engine.recurrence import (
    FREQUENCY_THRESHOLD_DAYS,
    Clock,
    RecurrenceScheduler,
    days_elapsed,
    is_due,
)
from household_ledger.engine.settlement import SettlementCalculator

__all__ = [
    "AllocationEngine",
    "Clock",
    "FREQUENCY_THRESHOLD_DAYS",
    "InvalidAllocationRequest",
    "RecurrenceScheduler",
    "SettlementCalculator",
    "days_elapsed",
    "is_due",
]
