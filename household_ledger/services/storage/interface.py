"""
Abstract Storage Interface

DESIGN DECISION: The engines never talk to a database. Everything they
read (roster, ledger, obligations) is handed in by a caller that holds
one of these interfaces. This allows us to:
1. Swap the in-memory stores for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

ATOMICITY CONTRACT: An expense and its full share set are written as
one unit (save_expense / replace_expense). Settlement must never see an
expense with half of its shares.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from household_ledger.models.household import (
    Category,
    Expense,
    Person,
    RecurringObligation,
)
from household_ledger.models.audit import AuditEvent


class HouseholdStorageInterface(ABC):
    """
    Roster provider.

    Returns the current household members, loaded fresh on each call.
    """

    @abstractmethod
    async def list_persons(self) -> list[Person]:
        """
        List all household members, primary members first.

        Returns:
            List of persons
        """
        pass

    @abstractmethod
    async def get_person(self, person_id: UUID) -> Optional[Person]:
        """
        Retrieve a person by ID.

        Returns:
            The person if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """List expense categories."""
        pass


class LedgerStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation must write an expense and its
    shares together or not at all.
    """

    @abstractmethod
    async def save_expense(self, expense: Expense) -> bool:
        """
        Save a new expense with its shares.

        Args:
            expense: The expense to save

        Returns:
            True if saved successfully

        Raises:
            DuplicateError: If an expense with this ID already exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        """
        Retrieve an expense by its ID.

        Returns:
            The expense if found, None otherwise
        """
        pass

    @abstractmethod
    async def replace_expense(self, expense: Expense) -> bool:
        """
        Replace an existing expense and its whole share set.

        Old shares are removed and the new ones inserted in the same unit.

        Raises:
            NotFoundError: If the expense doesn't exist
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> bool:
        """
        Delete an expense (and its shares) by ID.

        Returns:
            True if deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def list_expenses(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        payer_id: Optional[UUID] = None,
        category_id: Optional[UUID] = None,
        limit: Optional[int] = None,
    ) -> list[Expense]:
        """
        List expenses with optional filters, newest first.

        Args:
            date_from: Only expenses on or after this moment
            date_to: Only expenses before this moment
            payer_id: Only expenses paid by this person
            category_id: Only expenses in this category
            limit: Maximum number of results

        Returns:
            List of matching expenses
        """
        pass


class ObligationStorageInterface(ABC):
    """Abstract interface for recurring obligation storage."""

    @abstractmethod
    async def save_obligation(self, obligation: RecurringObligation) -> bool:
        """Insert or overwrite an obligation."""
        pass

    @abstractmethod
    async def get_obligation(self, obligation_id: UUID) -> Optional[RecurringObligation]:
        """Retrieve an obligation by ID."""
        pass

    @abstractmethod
    async def list_active_obligations(self) -> list[RecurringObligation]:
        """List obligations with is_active set."""
        pass

    @abstractmethod
    async def mark_materialized(self, obligation_id: UUID, materialized_at: datetime) -> bool:
        """
        Record that an obligation fired.

        Raises:
            NotFoundError: If the obligation doesn't exist
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one recurring run).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
