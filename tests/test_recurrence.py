"""
Tests for the recurrence scheduler.

The scheduler is async; each test drives it with asyncio.run so no
plugin is needed.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from household_ledger.engine import (
    FREQUENCY_THRESHOLD_DAYS,
    InvalidAllocationRequest,
    RecurrenceScheduler,
    days_elapsed,
    is_due,
)
from household_ledger.models import Frequency, RecurringObligation, SplitStrategy
from household_ledger.services.storage import (
    InMemoryLedgerStorage,
    InMemoryObligationStorage,
    StorageError,
)


def make_obligation(payer, frequency=Frequency.MONTHLY, **kwargs) -> RecurringObligation:
    defaults = dict(
        amount=Decimal("1200"),
        description="Rent",
        payer_id=payer.id,
        category_id=uuid4(),
        split_strategy=SplitStrategy.EQUAL,
        frequency=frequency,
    )
    defaults.update(kwargs)
    return RecurringObligation(**defaults)


class FailingLedger(InMemoryLedgerStorage):
    async def save_expense(self, expense):
        raise StorageError("disk full")


class FailingObligations(InMemoryObligationStorage):
    async def mark_materialized(self, obligation_id, materialized_at):
        raise StorageError("write rejected")


class TestDueCheck:
    """Pure due-date decisions."""

    def test_never_materialized_is_due(self, jenny, now):
        assert is_due(make_obligation(jenny), now) is True

    def test_monthly_not_due_after_29_days(self, jenny, now):
        obligation = make_obligation(jenny, last_materialized=now - timedelta(days=29))

        assert is_due(obligation, now) is False

    def test_monthly_due_after_30_days(self, jenny, now):
        obligation = make_obligation(jenny, last_materialized=now - timedelta(days=30))

        assert is_due(obligation, now) is True

    def test_partial_days_round_down(self, jenny, now):
        """29 days and 23 hours is still 29 whole days."""
        obligation = make_obligation(
            jenny, last_materialized=now - timedelta(days=29, hours=23)
        )

        assert is_due(obligation, now) is False

    @pytest.mark.parametrize("frequency", list(Frequency))
    def test_threshold_boundaries(self, jenny, now, frequency):
        threshold = FREQUENCY_THRESHOLD_DAYS[frequency]
        before = make_obligation(
            jenny, frequency, last_materialized=now - timedelta(days=threshold - 1)
        )
        at = make_obligation(
            jenny, frequency, last_materialized=now - timedelta(days=threshold)
        )

        assert is_due(before, now) is False
        assert is_due(at, now) is True

    def test_thresholds(self):
        assert FREQUENCY_THRESHOLD_DAYS == {
            Frequency.DAILY: 1,
            Frequency.WEEKLY: 7,
            Frequency.MONTHLY: 30,
            Frequency.YEARLY: 365,
        }

    def test_inactive_is_never_due(self, jenny, now):
        never_fired = make_obligation(jenny, is_active=False)
        long_ago = make_obligation(
            jenny, is_active=False, last_materialized=now - timedelta(days=1000)
        )

        assert is_due(never_fired, now) is False
        assert is_due(long_ago, now) is False

    def test_naive_last_materialized_is_treated_as_utc(self, jenny, now):
        naive = (now - timedelta(days=7)).replace(tzinfo=None)
        obligation = make_obligation(jenny, Frequency.WEEKLY, last_materialized=naive)

        assert obligation.last_materialized.tzinfo == timezone.utc
        assert is_due(obligation, now) is True

    def test_naive_now_against_aware_last_materialized(self, jenny, now):
        """Naive reference moments are read as UTC instead of failing to compare."""
        obligation = make_obligation(jenny, last_materialized=now)

        assert is_due(obligation, datetime(2026, 12, 1)) is True
        assert is_due(obligation, datetime(2026, 10, 20)) is False

    def test_days_elapsed(self, now):
        assert days_elapsed(now - timedelta(days=3, hours=5), now) == 3


class TestTick:
    """Materializing a due obligation."""

    def test_due_obligation_is_materialized(self, roster, jenny, eric, now):
        obligation = make_obligation(jenny)
        ledger = InMemoryLedgerStorage()
        obligations = InMemoryObligationStorage([obligation])
        scheduler = RecurrenceScheduler(ledger, obligations)

        expense = asyncio.run(scheduler.tick(obligation, roster, now))

        assert expense is not None
        assert expense.amount == Decimal("1200")
        assert expense.date == now
        assert expense.payer_id == jenny.id
        assert expense.recurring_obligation_id == obligation.id
        assert {s.person_id: s.amount for s in expense.shares} == {
            jenny.id: Decimal("600"),
            eric.id: Decimal("600"),
        }

        stored = asyncio.run(ledger.get_expense(expense.id))
        assert stored is not None
        assert len(stored.shares) == 2

        assert obligation.last_materialized == now
        persisted = asyncio.run(obligations.get_obligation(obligation.id))
        assert persisted.last_materialized == now

    def test_not_due_returns_none(self, roster, jenny, now):
        obligation = make_obligation(jenny, last_materialized=now - timedelta(days=2))
        ledger = InMemoryLedgerStorage()
        scheduler = RecurrenceScheduler(ledger, InMemoryObligationStorage([obligation]))

        assert asyncio.run(scheduler.tick(obligation, roster, now)) is None
        assert asyncio.run(ledger.list_expenses()) == []
        assert obligation.last_materialized == now - timedelta(days=2)

    def test_second_tick_same_day_does_nothing(self, roster, jenny, now):
        obligation = make_obligation(jenny)
        ledger = InMemoryLedgerStorage()
        scheduler = RecurrenceScheduler(ledger, InMemoryObligationStorage([obligation]))

        asyncio.run(scheduler.tick(obligation, roster, now))
        second = asyncio.run(scheduler.tick(obligation, roster, now + timedelta(hours=3)))

        assert second is None
        assert len(asyncio.run(ledger.list_expenses())) == 1

    def test_uses_clock_when_now_omitted(self, roster, jenny, now):
        obligation = make_obligation(jenny)
        scheduler = RecurrenceScheduler(
            InMemoryLedgerStorage(),
            InMemoryObligationStorage([obligation]),
            clock=lambda: now,
        )

        expense = asyncio.run(scheduler.tick(obligation, roster))

        assert expense.date == now
        assert obligation.last_materialized == now

    def test_assigned_obligation_uses_recipients(self, roster, jenny, eric, melina, now):
        obligation = make_obligation(
            eric,
            amount=Decimal("80"),
            description="Swimming lessons",
            split_strategy=SplitStrategy.ASSIGNED,
            recipient_ids=[melina.id],
        )
        scheduler = RecurrenceScheduler(
            InMemoryLedgerStorage(), InMemoryObligationStorage([obligation])
        )

        expense = asyncio.run(scheduler.tick(obligation, roster, now))

        assert {s.person_id: s.amount for s in expense.shares} == {
            jenny.id: Decimal("40"),
            eric.id: Decimal("40"),
        }

    def test_naive_now_then_aware_now(self, roster, jenny, now):
        """A naive moment is stored as UTC and later aware ticks still compare."""
        obligation = make_obligation(jenny, Frequency.DAILY)
        obligations = InMemoryObligationStorage([obligation])
        scheduler = RecurrenceScheduler(InMemoryLedgerStorage(), obligations)
        naive = datetime(2026, 10, 1, 9, 0)

        first = asyncio.run(scheduler.tick(obligation, roster, naive))

        assert first.date.tzinfo == timezone.utc
        assert obligation.last_materialized == naive.replace(tzinfo=timezone.utc)
        stored = asyncio.run(obligations.get_obligation(obligation.id))
        assert stored.last_materialized.tzinfo == timezone.utc

        second = asyncio.run(scheduler.tick(obligation, roster, now))

        assert second is not None
        assert obligation.last_materialized == now

    def test_naive_clock(self, roster, jenny):
        obligation = make_obligation(jenny)
        scheduler = RecurrenceScheduler(
            InMemoryLedgerStorage(),
            InMemoryObligationStorage([obligation]),
            clock=lambda: datetime(2026, 10, 1, 9, 0),
        )

        expense = asyncio.run(scheduler.tick(obligation, roster))

        assert expense.date == datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)
        assert obligation.last_materialized.tzinfo == timezone.utc


class TestTickFailures:
    """last_materialized only advances after both writes succeed."""

    def test_failed_expense_write_leaves_obligation_untouched(self, roster, jenny, now):
        obligation = make_obligation(jenny)
        obligations = InMemoryObligationStorage([obligation])
        scheduler = RecurrenceScheduler(FailingLedger(), obligations)

        with pytest.raises(StorageError):
            asyncio.run(scheduler.tick(obligation, roster, now))

        assert obligation.last_materialized is None
        assert asyncio.run(obligations.get_obligation(obligation.id)).last_materialized is None

    def test_failed_timestamp_write_leaves_obligation_untouched(self, roster, jenny, now):
        obligation = make_obligation(jenny)
        scheduler = RecurrenceScheduler(
            InMemoryLedgerStorage(), FailingObligations([obligation])
        )

        with pytest.raises(StorageError):
            asyncio.run(scheduler.tick(obligation, roster, now))

        assert obligation.last_materialized is None

    def test_empty_allocation_raises(self, melina, now):
        """A roster without primaries can't carry an EQUAL obligation."""
        obligation = make_obligation(melina)
        ledger = InMemoryLedgerStorage()
        scheduler = RecurrenceScheduler(ledger, InMemoryObligationStorage([obligation]))

        with pytest.raises(InvalidAllocationRequest):
            asyncio.run(scheduler.tick(obligation, [melina], now))

        assert asyncio.run(ledger.list_expenses()) == []
        assert obligation.last_materialized is None

    def test_retry_after_failure_fires(self, roster, jenny, now):
        """A failed run is picked up again by the next one."""
        obligation = make_obligation(jenny)
        obligations = InMemoryObligationStorage([obligation])

        with pytest.raises(StorageError):
            asyncio.run(RecurrenceScheduler(FailingLedger(), obligations).tick(obligation, roster, now))

        later = now + timedelta(hours=1)
        expense = asyncio.run(
            RecurrenceScheduler(InMemoryLedgerStorage(), obligations).tick(obligation, roster, later)
        )

        assert expense is not None
        assert obligation.last_materialized == later


class TestObligationModel:

    def test_end_before_start_is_rejected(self, jenny):
        start = datetime(2026, 5, 1).date()
        with pytest.raises(ValueError, match="End date cannot be before start date"):
            make_obligation(jenny, start_date=start, end_date=start - timedelta(days=1))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
