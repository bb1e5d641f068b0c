"""
In-Memory Storage Implementation

Reference implementation of every storage interface, used by the tests
and for local runs.

Each write stores a deep copy in a single dict assignment, so an
expense and its shares become visible together. Reads hand out copies
so callers can't mutate stored state behind the store's back.
"""

from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from household_ledger.models.household import (
    Category,
    Expense,
    Person,
    RecurringObligation,
    ensure_utc,
    utc_now,
)
from household_ledger.models.audit import AuditEvent
from household_ledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    HouseholdStorageInterface,
    LedgerStorageInterface,
    NotFoundError,
    ObligationStorageInterface,
)


class InMemoryHouseholdStorage(HouseholdStorageInterface):
    """Household roster held in a dict."""

    def __init__(
        self,
        persons: Optional[Iterable[Person]] = None,
        categories: Optional[Iterable[Category]] = None,
    ):
        self._persons: dict[UUID, Person] = {}
        self._categories: dict[UUID, Category] = {}
        for person in persons or []:
            self.add_person(person)
        for category in categories or []:
            self.add_category(category)

    def add_person(self, person: Person) -> None:
        self._persons[person.id] = person.model_copy(deep=True)

    def add_category(self, category: Category) -> None:
        self._categories[category.id] = category.model_copy(deep=True)

    async def list_persons(self) -> list[Person]:
        # Parents first, otherwise insertion order
        ordered = sorted(self._persons.values(), key=lambda p: not p.is_parent)
        return [person.model_copy(deep=True) for person in ordered]

    async def get_person(self, person_id: UUID) -> Optional[Person]:
        person = self._persons.get(person_id)
        return person.model_copy(deep=True) if person else None

    async def list_categories(self) -> list[Category]:
        return [category.model_copy(deep=True) for category in self._categories.values()]


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Expenses (with their shares) held in a dict keyed by ID."""

    def __init__(self):
        self._expenses: dict[UUID, Expense] = {}

    async def save_expense(self, expense: Expense) -> bool:
        if expense.id in self._expenses:
            raise DuplicateError(f"Expense already exists: {expense.id}")
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return True

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        expense = self._expenses.get(expense_id)
        return expense.model_copy(deep=True) if expense else None

    async def replace_expense(self, expense: Expense) -> bool:
        if expense.id not in self._expenses:
            raise NotFoundError(f"Expense not found: {expense.id}")
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return True

    async def delete_expense(self, expense_id: UUID) -> bool:
        return self._expenses.pop(expense_id, None) is not None

    async def list_expenses(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        payer_id: Optional[UUID] = None,
        category_id: Optional[UUID] = None,
        limit: Optional[int] = None,
    ) -> list[Expense]:
        results = []
        for expense in self._expenses.values():
            if date_from and expense.date < date_from:
                continue
            if date_to and expense.date >= date_to:
                continue
            if payer_id and expense.payer_id != payer_id:
                continue
            if category_id and expense.category_id != category_id:
                continue
            results.append(expense.model_copy(deep=True))

        results.sort(key=lambda e: e.date, reverse=True)

        if limit is not None:
            results = results[:limit]
        return results


class InMemoryObligationStorage(ObligationStorageInterface):
    """Recurring obligations held in a dict keyed by ID."""

    def __init__(self, obligations: Optional[Iterable[RecurringObligation]] = None):
        self._obligations: dict[UUID, RecurringObligation] = {}
        for obligation in obligations or []:
            self._obligations[obligation.id] = obligation.model_copy(deep=True)

    async def save_obligation(self, obligation: RecurringObligation) -> bool:
        self._obligations[obligation.id] = obligation.model_copy(deep=True)
        return True

    async def get_obligation(self, obligation_id: UUID) -> Optional[RecurringObligation]:
        obligation = self._obligations.get(obligation_id)
        return obligation.model_copy(deep=True) if obligation else None

    async def list_active_obligations(self) -> list[RecurringObligation]:
        return [
            obligation.model_copy(deep=True)
            for obligation in self._obligations.values()
            if obligation.is_active
        ]

    async def mark_materialized(self, obligation_id: UUID, materialized_at: datetime) -> bool:
        obligation = self._obligations.get(obligation_id)
        if obligation is None:
            raise NotFoundError(f"Obligation not found: {obligation_id}")
        self._obligations[obligation_id] = obligation.model_copy(
            update={"last_materialized": ensure_utc(materialized_at)}
        )
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event.model_copy(deep=True))
        return True

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]


def default_household(now: Optional[datetime] = None) -> tuple[list[Person], list[Category]]:
    """
    The sample household used for local runs: two earning parents
    and two children, plus the usual categories.
    """
    created = now or utc_now()
    persons = [
        Person(name="Jenny", is_parent=True, income=3500, created_at=created),
        Person(name="Eric", is_parent=True, income=4500, created_at=created),
        Person(name="Melina", is_parent=False, created_at=created),
        Person(name="Matheo", is_parent=False, created_at=created),
    ]
    categories = [
        Category(name=name)
        for name in ("Groceries", "Rent", "Transport", "Children", "Other")
    ]
    return persons, categories
