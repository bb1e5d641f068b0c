"""
Settlement Calculator

Reduces the expense ledger to the payment that squares the two
primary members.

ALGORITHM (single pass over the ledger):
1. Credit each expense's payer with the full amount they fronted.
2. Debit each primary with every share allocated to them.
3. net = balance(first) - balance(second)
4. |net| below epsilon -> nothing to settle
5. Otherwise the primary with the lower balance pays the other |net|.

SCOPE: Exactly two primaries. Any other count yields an empty list;
netting across more parties is a different problem and is not attempted.
Shares held by dependents never touch the balances directly.
"""

from decimal import Decimal
from typing import Iterable, Sequence
from uuid import UUID

from household_ledger.models.household import (
    Expense,
    Person,
    PersonBalance,
    SettlementInstruction,
)

DEFAULT_EPSILON = Decimal("0.01")


class SettlementCalculator:
    """Two-party netting over a list of expenses."""

    def __init__(self, epsilon: Decimal = DEFAULT_EPSILON):
        self._epsilon = Decimal(epsilon)

    def summarize(
        self,
        expenses: Iterable[Expense],
        primaries: Sequence[Person],
    ) -> list[PersonBalance]:
        """
        Paid and owed totals for each primary, in the order given.

        Payments by anyone else and shares of anyone else are ignored.
        """
        balances = {
            person.id: PersonBalance(person_id=person.id, person_name=person.name)
            for person in primaries
        }

        for expense in expenses:
            payer = balances.get(expense.payer_id)
            if payer is not None:
                payer.paid += expense.amount

            for share in expense.shares:
                debtor = balances.get(share.person_id)
                if debtor is not None:
                    debtor.owed += share.amount

        return list(balances.values())

    def compute_balances(
        self,
        expenses: Iterable[Expense],
        primaries: Sequence[Person],
    ) -> dict[UUID, Decimal]:
        """Net balance (paid - owed) keyed by primary id."""
        return {
            entry.person_id: entry.balance
            for entry in self.summarize(expenses, primaries)
        }

    def settle(
        self,
        expenses: Iterable[Expense],
        primaries: Sequence[Person],
    ) -> list[SettlementInstruction]:
        """
        Compute the transfer that zeroes the balance between two primaries.

        Returns:
            A single instruction, or an empty list when the balance is
            already even or the household does not have exactly two primaries
        """
        if len(primaries) != 2:
            return []

        first, second = primaries
        balances = self.compute_balances(expenses, primaries)
        net = balances[first.id] - balances[second.id]

        if abs(net) < self._epsilon:
            return []

        debtor, creditor = (second, first) if net > 0 else (first, second)
        return [
            SettlementInstruction(
                from_person_id=debtor.id,
                from_person_name=debtor.name,
                to_person_id=creditor.id,
                to_person_name=creditor.name,
                amount=abs(net),
            )
        ]
