"""
Tests for the in-memory stores, the audit logger and settings.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from household_ledger.audit import AuditLogger, create_correlation_id
from household_ledger.config import LedgerSettings, get_settings, validate_all_settings
from household_ledger.models import (
    AuditEventBuilder,
    Expense,
    ExpenseShare,
    Frequency,
    RecurringObligation,
    SplitStrategy,
)
from household_ledger.services.storage import (
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryHouseholdStorage,
    InMemoryLedgerStorage,
    InMemoryObligationStorage,
    NotFoundError,
    StorageError,
    default_household,
)


def make_expense(payer_id=None, when=None, category_id=None) -> Expense:
    payer_id = payer_id or uuid4()
    return Expense(
        amount=Decimal("10"),
        description="Test",
        date=when or datetime(2026, 10, 1, tzinfo=timezone.utc),
        payer_id=payer_id,
        category_id=category_id,
        split_strategy=SplitStrategy.ASSIGNED,
        shares=[ExpenseShare(person_id=payer_id, amount=Decimal("10"))],
    )


class TestHouseholdStorage:

    def test_parents_listed_first(self, jenny, eric, melina):
        storage = InMemoryHouseholdStorage([melina, jenny, eric])

        persons = asyncio.run(storage.list_persons())

        assert [p.name for p in persons] == ["Jenny", "Eric", "Melina"]

    def test_get_person(self, jenny):
        storage = InMemoryHouseholdStorage([jenny])

        assert asyncio.run(storage.get_person(jenny.id)) == jenny
        assert asyncio.run(storage.get_person(uuid4())) is None

    def test_reads_are_copies(self, jenny):
        storage = InMemoryHouseholdStorage([jenny])

        asyncio.run(storage.list_persons())[0].income = Decimal("1")

        assert asyncio.run(storage.get_person(jenny.id)).income == Decimal("3000")

    def test_default_household(self):
        persons, categories = default_household()

        assert [p.name for p in persons if p.is_parent] == ["Jenny", "Eric"]
        assert len(persons) == 4
        assert all(p.income is not None for p in persons if p.is_parent)
        assert "Groceries" in {c.name for c in categories}


class TestLedgerStorage:

    def test_save_and_get(self):
        storage = InMemoryLedgerStorage()
        expense = make_expense()

        asyncio.run(storage.save_expense(expense))

        assert asyncio.run(storage.get_expense(expense.id)) == expense

    def test_duplicate_save_is_rejected(self):
        storage = InMemoryLedgerStorage()
        expense = make_expense()
        asyncio.run(storage.save_expense(expense))

        with pytest.raises(DuplicateError):
            asyncio.run(storage.save_expense(expense))

    def test_replace_missing_expense(self):
        with pytest.raises(NotFoundError):
            asyncio.run(InMemoryLedgerStorage().replace_expense(make_expense()))

    def test_delete(self):
        storage = InMemoryLedgerStorage()
        expense = make_expense()
        asyncio.run(storage.save_expense(expense))

        assert asyncio.run(storage.delete_expense(expense.id)) is True
        assert asyncio.run(storage.delete_expense(expense.id)) is False

    def test_stored_shares_are_isolated(self):
        """Mutating the caller's object does not change the stored expense."""
        storage = InMemoryLedgerStorage()
        expense = make_expense()
        asyncio.run(storage.save_expense(expense))

        expense.shares.clear()

        assert len(asyncio.run(storage.get_expense(expense.id)).shares) == 1

    def test_list_filters(self):
        storage = InMemoryLedgerStorage()
        payer = uuid4()
        category = uuid4()
        base = datetime(2026, 10, 1, tzinfo=timezone.utc)
        first = make_expense(payer, base, category)
        second = make_expense(payer, base + timedelta(days=1))
        other = make_expense(when=base + timedelta(days=2), category_id=category)
        for expense in (first, second, other):
            asyncio.run(storage.save_expense(expense))

        assert [e.id for e in asyncio.run(storage.list_expenses())] == [
            other.id, second.id, first.id
        ]
        assert [e.id for e in asyncio.run(storage.list_expenses(payer_id=payer))] == [
            second.id, first.id
        ]
        assert [e.id for e in asyncio.run(storage.list_expenses(category_id=category))] == [
            other.id, first.id
        ]
        assert [e.id for e in asyncio.run(storage.list_expenses(
            date_from=base, date_to=base + timedelta(days=1)
        ))] == [first.id]
        assert len(asyncio.run(storage.list_expenses(limit=2))) == 2


class TestObligationStorage:

    def make_obligation(self, **kwargs) -> RecurringObligation:
        return RecurringObligation(
            amount=Decimal("50"),
            payer_id=uuid4(),
            split_strategy=SplitStrategy.EQUAL,
            frequency=Frequency.WEEKLY,
            **kwargs,
        )

    def test_list_active_only(self):
        active = self.make_obligation()
        paused = self.make_obligation(is_active=False)
        storage = InMemoryObligationStorage([active, paused])

        assert [o.id for o in asyncio.run(storage.list_active_obligations())] == [active.id]

    def test_mark_materialized(self, now):
        obligation = self.make_obligation()
        storage = InMemoryObligationStorage()
        asyncio.run(storage.save_obligation(obligation))

        asyncio.run(storage.mark_materialized(obligation.id, now))

        assert asyncio.run(storage.get_obligation(obligation.id)).last_materialized == now
        assert obligation.last_materialized is None

    def test_mark_materialized_with_naive_moment(self):
        """Naive timestamps are stored as UTC."""
        obligation = self.make_obligation()
        storage = InMemoryObligationStorage([obligation])

        asyncio.run(storage.mark_materialized(obligation.id, datetime(2026, 10, 1, 9, 0)))

        stored = asyncio.run(storage.get_obligation(obligation.id))
        assert stored.last_materialized == datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)

    def test_mark_unknown_obligation(self, now):
        with pytest.raises(NotFoundError):
            asyncio.run(InMemoryObligationStorage().mark_materialized(uuid4(), now))


class FailingAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise StorageError("audit store offline")


class TestAuditLogger:

    def test_events_are_persisted(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()
        expense_id = uuid4()

        asyncio.run(logger.log_expense_created(
            expense_id=expense_id,
            description="Groceries",
            amount="84.20",
            correlation_id=correlation_id,
        ))

        by_correlation = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        by_entity = asyncio.run(storage.get_events_by_entity("expense", expense_id))
        assert len(by_correlation) == 1
        assert by_correlation == by_entity

    def test_storage_failure_does_not_raise(self):
        logger = AuditLogger(FailingAuditStorage())

        result = asyncio.run(logger.log(
            AuditEventBuilder.system_error("test", "something broke")
        ))

        assert result is False

    def test_without_storage_logs_locally(self):
        result = asyncio.run(AuditLogger().log(
            AuditEventBuilder.expense_deleted(uuid4())
        ))

        assert result is True


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("LEDGER_CURRENCY", "LEDGER_SETTLEMENT_EPSILON"):
            monkeypatch.delenv(name, raising=False)

        settings = LedgerSettings()

        assert settings.currency == "EUR"
        assert settings.settlement_epsilon == Decimal("0.01")
        assert settings.storage_retry_attempts == 3

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("LEDGER_CURRENCY", "usd")
        monkeypatch.setenv("LEDGER_SETTLEMENT_EPSILON", "0.5")

        settings = LedgerSettings()

        assert settings.currency == "USD"
        assert settings.settlement_epsilon == Decimal("0.5")

    def test_description_limit_cannot_exceed_stored_limit(self):
        """Expenses store at most 500 characters, so the setting may not allow more."""
        assert LedgerSettings(max_description_length=200).max_description_length == 200
        with pytest.raises(ValueError):
            LedgerSettings(max_description_length=1000)

    def test_invalid_retry_attempts(self):
        with pytest.raises(ValueError):
            LedgerSettings(storage_retry_attempts=0)

    def test_validate_all_settings(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        get_settings.cache_clear()

        results = validate_all_settings()

        assert results["ledger"] is True
        assert results["app"] is False
        assert "app_error" in results
        get_settings.cache_clear()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
