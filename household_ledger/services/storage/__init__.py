"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements in-memory stores, but designed to be swappable.
"""

from household_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    HouseholdStorageInterface,
    LedgerStorageInterface,
    NotFoundError,
    ObligationStorageInterface,
    StorageError,
)
from household_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryHouseholdStorage,
    InMemoryLedgerStorage,
    InMemoryObligationStorage,
    default_household,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "HouseholdStorageInterface",
    "LedgerStorageInterface",
    "ObligationStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryHouseholdStorage",
    "InMemoryLedgerStorage",
    "InMemoryObligationStorage",
    "default_household",
]
