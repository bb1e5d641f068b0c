"""Services package."""

from household_ledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    HouseholdStorageInterface,
    InMemoryAuditStorage,
    InMemoryHouseholdStorage,
    InMemoryLedgerStorage,
    InMemoryObligationStorage,
    LedgerStorageInterface,
    NotFoundError,
    ObligationStorageInterface,
    StorageError,
    default_household,
)

__all__ = [
    # Storage interfaces
    "AuditStorageInterface",
    "HouseholdStorageInterface",
    "LedgerStorageInterface",
    "ObligationStorageInterface",
    # Storage exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory storage
    "InMemoryAuditStorage",
    "InMemoryHouseholdStorage",
    "InMemoryLedgerStorage",
    "InMemoryObligationStorage",
    "default_household",
]
