"""Shared fixtures: a two-parent household with one child."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from household_ledger.config import LedgerSettings
from household_ledger.models import Person


@pytest.fixture
def jenny() -> Person:
    return Person(name="Jenny", is_parent=True, income=Decimal("3000"))


@pytest.fixture
def eric() -> Person:
    return Person(name="Eric", is_parent=True, income=Decimal("1000"))


@pytest.fixture
def melina() -> Person:
    return Person(name="Melina", is_parent=False)


@pytest.fixture
def roster(jenny, eric, melina) -> list[Person]:
    return [jenny, eric, melina]


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def fast_settings() -> LedgerSettings:
    """Ledger settings with no retry backoff."""
    return LedgerSettings(storage_retry_attempts=3, storage_retry_wait_seconds=0)
