"""
Allocation Engine

Splits an expense amount into per-person shares.

RULES:
- EQUAL: even split across primary members only. Dependents never
  receive a direct share.
- WEIGHTED: split across primaries in proportion to income. A primary
  without income still gets a (zero) share entry. If nobody has any
  income, every share is zero; there is NO fallback to an equal split.
- ASSIGNED: split across explicitly named people. If any named person
  is a dependent, the whole amount is split evenly across ALL primaries
  instead (costs caused by dependents are borne by the primaries).

IMPORTANT: The engine never raises for bad input. A missing,
non-numeric or non-positive amount, an unknown strategy tag, no
primaries or no recipients all produce an empty list, and callers
must check for it (see InvalidAllocationRequest).

No rounding happens here. Shares keep full Decimal precision so that
their sum matches the amount; rounding to cents is a display concern.
"""

from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Union
from uuid import UUID

from household_ledger.models.household import (
    ExpenseShare,
    Person,
    SplitStrategy,
    ValidationResult,
)

ZERO = Decimal("0")


class InvalidAllocationRequest(Exception):
    """
    Raised by callers of the engine when a request cannot be allocated.

    The engine itself degrades to an empty result; whoever turns that
    result into a stored expense raises this instead of persisting an
    expense without shares.
    """

    def __init__(self, message: str, validation: Optional[ValidationResult] = None):
        super().__init__(message)
        self.validation = validation


class AllocationEngine:
    """
    Computes expense shares for a household roster.

    Stateless: the roster is passed in on every call and never cached.
    """

    def allocate(
        self,
        amount: Decimal,
        strategy: Union[SplitStrategy, str],
        roster: Iterable[Person],
        explicit_recipient_ids: Optional[Iterable[UUID]] = None,
    ) -> list[ExpenseShare]:
        """
        Split amount according to strategy.

        Args:
            amount: Positive amount to split
            strategy: Split strategy (enum or raw tag)
            roster: Current household members
            explicit_recipient_ids: Named recipients, used by ASSIGNED

        Returns:
            One share per recipient, or an empty list for degenerate input
        """
        try:
            amount = Decimal(amount)
        except (InvalidOperation, TypeError, ValueError):
            return []
        if not amount.is_finite() or amount <= 0:
            return []

        try:
            strategy = SplitStrategy(strategy)
        except ValueError:
            return []

        roster = list(roster)
        primaries = [person for person in roster if person.is_parent]

        if strategy == SplitStrategy.EQUAL:
            return self._split_evenly(amount, primaries)
        if strategy == SplitStrategy.WEIGHTED:
            return self._split_weighted(amount, primaries)
        return self._split_assigned(
            amount,
            roster,
            primaries,
            list(explicit_recipient_ids or []),
        )

    def _split_evenly(
        self,
        amount: Decimal,
        recipients: list[Person],
    ) -> list[ExpenseShare]:
        """Give every recipient the same share."""
        if not recipients:
            return []

        share = amount / len(recipients)
        return [
            ExpenseShare(person_id=person.id, person_name=person.name, amount=share)
            for person in recipients
        ]

    def _split_weighted(
        self,
        amount: Decimal,
        primaries: list[Person],
    ) -> list[ExpenseShare]:
        """Split in proportion to income."""
        total_income = sum((person.income or ZERO for person in primaries), ZERO)

        shares = []
        for person in primaries:
            if total_income > 0:
                share = amount * (person.income or ZERO) / total_income
            else:
                share = ZERO
            shares.append(
                ExpenseShare(person_id=person.id, person_name=person.name, amount=share)
            )
        return shares

    def _split_assigned(
        self,
        amount: Decimal,
        roster: list[Person],
        primaries: list[Person],
        recipient_ids: list[UUID],
    ) -> list[ExpenseShare]:
        """Split across named recipients, or across primaries if a dependent is named."""
        if not recipient_ids:
            return []

        wanted = set(recipient_ids)
        named = [person for person in roster if person.id in wanted]

        if any(not person.is_parent for person in named):
            return self._split_evenly(amount, primaries)

        return self._split_evenly(amount, named)
