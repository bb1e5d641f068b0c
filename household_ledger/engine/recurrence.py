"""
Recurrence Scheduler

Decides when a recurring obligation is due and materializes it into a
concrete expense.

DUE CHECK:
- Inactive obligations are never due.
- An obligation that has never fired is due immediately.
- Otherwise it is due once the whole days elapsed since the last
  firing reach the frequency threshold (1 / 7 / 30 / 365 days).

KNOWN LIMITATION: Thresholds are fixed day counts. A "monthly"
obligation fires every 30 days, not on the same day each month, and
leap years are ignored.

FAILURE SEMANTICS: last_materialized moves forward only after the new
expense (with all its shares) and the new timestamp have been stored.
Any failure before that propagates and leaves the obligation untouched,
so the next run tries again instead of silently skipping a period.
"""

from datetime import datetime
from typing import Callable, Iterable, Optional

from household_ledger.engine.allocation import AllocationEngine, InvalidAllocationRequest
from household_ledger.models.household import (
    Expense,
    Frequency,
    Person,
    RecurringObligation,
    ensure_utc,
    utc_now,
)
from household_ledger.services.storage.interface import (
    LedgerStorageInterface,
    ObligationStorageInterface,
)

Clock = Callable[[], datetime]

FREQUENCY_THRESHOLD_DAYS = {
    Frequency.DAILY: 1,
    Frequency.WEEKLY: 7,
    Frequency.MONTHLY: 30,
    Frequency.YEARLY: 365,
}


def days_elapsed(since: datetime, now: datetime) -> int:
    """Whole days between two moments, rounded down. Naive values count as UTC."""
    return (ensure_utc(now) - ensure_utc(since)).days


def is_due(obligation: RecurringObligation, now: datetime) -> bool:
    """Should this obligation produce a new expense at `now`?"""
    if not obligation.is_active:
        return False

    if obligation.last_materialized is None:
        return True

    threshold = FREQUENCY_THRESHOLD_DAYS[obligation.frequency]
    return days_elapsed(obligation.last_materialized, now) >= threshold


class RecurrenceScheduler:
    """
    Materializes due recurring obligations.

    The scheduler owns the due check and the ordering of writes;
    storage itself is injected.
    """

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        obligations: ObligationStorageInterface,
        engine: Optional[AllocationEngine] = None,
        clock: Clock = utc_now,
    ):
        self._ledger = ledger
        self._obligations = obligations
        self._engine = engine or AllocationEngine()
        self._clock = clock

    def now(self) -> datetime:
        """Current moment from the injected clock, as UTC."""
        return ensure_utc(self._clock())

    def build_expense(
        self,
        obligation: RecurringObligation,
        roster: Iterable[Person],
        now: datetime,
    ) -> Expense:
        """
        Allocate the obligation's amount and build the expense for `now`.

        Raises:
            InvalidAllocationRequest: If the allocation yields no shares
        """
        shares = self._engine.allocate(
            obligation.amount,
            obligation.split_strategy,
            roster,
            obligation.recipient_ids,
        )
        if not shares:
            raise InvalidAllocationRequest(
                f"Obligation {obligation.id} ({obligation.split_strategy.value}) "
                "produced no shares for the current roster"
            )

        return Expense(
            amount=obligation.amount,
            description=obligation.description,
            date=now,
            payer_id=obligation.payer_id,
            category_id=obligation.category_id,
            split_strategy=obligation.split_strategy,
            shares=shares,
            recurring_obligation_id=obligation.id,
            created_at=now,
            updated_at=now,
        )

    async def tick(
        self,
        obligation: RecurringObligation,
        roster: Iterable[Person],
        now: Optional[datetime] = None,
    ) -> Optional[Expense]:
        """
        Materialize the obligation if it is due.

        Args:
            obligation: The recurring obligation to check
            roster: Current household members
            now: Reference moment (defaults to the injected clock)

        Returns:
            The new expense, or None if the obligation was not due

        Raises:
            InvalidAllocationRequest: If the allocation yields no shares
            StorageError: If persisting the expense or the timestamp fails
        """
        now = ensure_utc(now) if now is not None else self.now()

        if not is_due(obligation, now):
            return None

        expense = self.build_expense(obligation, roster, now)

        await self._ledger.save_expense(expense)
        await self._obligations.mark_materialized(obligation.id, now)
        obligation.last_materialized = now

        return expense
