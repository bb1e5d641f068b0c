"""
Main Orchestrator for Household Ledger

This module ties together all the components and defines the
end-to-end flows for:
1. Expense entry (draft → validate → allocate → save)
2. Expense edit / delete (whole share set replaced, never patched)
3. Settlement (ledger → balances → transfer)
4. Recurring run (active obligations → due check → materialize)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the allocation engine without validation
- No expense is stored without shares
- An expense and its shares are written as one unit
- Every change is audited

The engines are pure; everything with a side effect lives here.
"""

from datetime import date
from typing import Awaitable, Callable, Optional, TypeVar
from uuid import UUID

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from household_ledger.audit import AuditLogger, create_correlation_id, setup_logging
from household_ledger.config import LedgerSettings, get_settings
from household_ledger.engine import (
    AllocationEngine,
    Clock,
    InvalidAllocationRequest,
    RecurrenceScheduler,
    SettlementCalculator,
    is_due,
)
from household_ledger.models.household import (
    Expense,
    ExpenseDraft,
    ExpensePeriod,
    ExpenseStats,
    Person,
    PersonBalance,
    RecurringRunResult,
    SettlementInstruction,
    ValidationResult,
    ensure_utc,
    utc_now,
)
from household_ledger.queries import ExpenseQueryExecutor
from household_ledger.services.storage import (
    ConnectionError,
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
from household_ledger.validation import ExpenseValidator

logger = structlog.get_logger(__name__)

T = TypeVar("T")


async def with_storage_retry(
    operation: Callable[[], Awaitable[T]],
    settings: LedgerSettings,
) -> T:
    """
    Run a storage write, retrying on connection errors.

    Any other storage error, or the last connection error, propagates.
    """
    async for attempt in AsyncRetrying(
        retry=retry_if_exception_type(ConnectionError),
        stop=stop_after_attempt(settings.storage_retry_attempts),
        wait=wait_exponential(multiplier=settings.storage_retry_wait_seconds, max=10),
        reraise=True,
    ):
        with attempt:
            return await operation()


class ExpenseFlow:
    """
    Orchestrates expense entry, edit and deletion.

    Flow:
    1. Load the roster fresh from the household store
    2. Validate the draft (two stages)
    3. Allocate shares
    4. Save the expense with its shares as one unit
    """

    def __init__(
        self,
        household: HouseholdStorageInterface,
        ledger: LedgerStorageInterface,
        validator: Optional[ExpenseValidator] = None,
        engine: Optional[AllocationEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._household = household
        self._ledger = ledger
        self._settings = settings or get_settings().ledger
        self._validator = validator or ExpenseValidator(self._settings)
        self._engine = engine or AllocationEngine()
        self._audit_logger = audit_logger
        self._queries = ExpenseQueryExecutor(ledger)

    async def _prepare(
        self,
        draft: ExpenseDraft,
        correlation_id: UUID,
    ) -> tuple[list, ValidationResult]:
        """
        Validate a draft and allocate its shares.

        Raises:
            InvalidAllocationRequest: If validation fails or no shares result
        """
        roster = await self._household.list_persons()

        result = self._validator.validate(draft, roster)
        if not result.is_valid:
            if self._audit_logger:
                issues = [
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                    if i.severity == "error"
                ]
                await self._audit_logger.log_validation_failed(
                    draft_id=draft.draft_id,
                    issues=issues,
                    correlation_id=correlation_id,
                )
            raise InvalidAllocationRequest(
                self._validator.get_user_friendly_summary(result),
                validation=result,
            )

        shares = self._engine.allocate(
            draft.amount,
            draft.strategy,
            roster,
            draft.recipient_ids,
        )
        if not shares:
            if self._audit_logger:
                await self._audit_logger.log_allocation_rejected(
                    entity_type="draft",
                    entity_id=draft.draft_id,
                    split_strategy=draft.split_strategy,
                    correlation_id=correlation_id,
                )
            raise InvalidAllocationRequest(
                f"{draft.split_strategy} split produced no shares",
                validation=result,
            )

        return shares, result

    async def _write(
        self,
        operation: Callable[[], Awaitable[T]],
        expense_id: UUID,
        correlation_id: UUID,
    ) -> T:
        try:
            return await with_storage_retry(operation, self._settings)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    entity_type="expense",
                    entity_id=expense_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

    async def create_expense(
        self,
        draft: ExpenseDraft,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Validate, allocate and save a new expense.

        Returns:
            The saved expense with its shares

        Raises:
            InvalidAllocationRequest: If the draft is rejected
            StorageError: If saving fails
        """
        correlation_id = correlation_id or create_correlation_id()

        shares, _ = await self._prepare(draft, correlation_id)
        now = utc_now()

        expense = Expense(
            amount=draft.amount,
            description=draft.description,
            date=draft.date or now,
            payer_id=draft.payer_id,
            category_id=draft.category_id,
            split_strategy=draft.strategy,
            shares=shares,
            created_at=now,
            updated_at=now,
        )

        await self._write(
            lambda: self._ledger.save_expense(expense),
            expense.id,
            correlation_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_expense_created(
                expense_id=expense.id,
                description=expense.description,
                amount=str(expense.amount),
                correlation_id=correlation_id,
            )

        return expense

    async def update_expense(
        self,
        expense_id: UUID,
        draft: ExpenseDraft,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Replace an expense and recompute its whole share set.

        Raises:
            NotFoundError: If the expense doesn't exist
            InvalidAllocationRequest: If the draft is rejected
            StorageError: If saving fails
        """
        correlation_id = correlation_id or create_correlation_id()

        existing = await self._ledger.get_expense(expense_id)
        if existing is None:
            raise NotFoundError(f"Expense not found: {expense_id}")

        shares, _ = await self._prepare(draft, correlation_id)

        updated = Expense(
            id=existing.id,
            amount=draft.amount,
            description=draft.description,
            date=draft.date or existing.date,
            payer_id=draft.payer_id,
            category_id=draft.category_id,
            split_strategy=draft.strategy,
            shares=shares,
            recurring_obligation_id=existing.recurring_obligation_id,
            created_at=existing.created_at,
            updated_at=utc_now(),
        )

        await self._write(
            lambda: self._ledger.replace_expense(updated),
            expense_id,
            correlation_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_expense_updated(
                expense_id=expense_id,
                amount=str(updated.amount),
                share_count=len(updated.shares),
                correlation_id=correlation_id,
            )

        return updated

    async def delete_expense(
        self,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete an expense and its shares.

        Raises:
            NotFoundError: If the expense doesn't exist
        """
        correlation_id = correlation_id or create_correlation_id()

        deleted = await self._write(
            lambda: self._ledger.delete_expense(expense_id),
            expense_id,
            correlation_id,
        )
        if not deleted:
            raise NotFoundError(f"Expense not found: {expense_id}")

        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense_id,
                correlation_id=correlation_id,
            )

    async def list_expenses(
        self,
        period: ExpensePeriod = ExpensePeriod.ALL,
        today: Optional[date] = None,
    ) -> list[Expense]:
        """List expenses for a reporting period, newest first."""
        return await self._queries.list_expenses(period, today)

    async def stats(self, today: Optional[date] = None) -> ExpenseStats:
        return await self._queries.stats(today)


class SettlementFlow:
    """
    Computes who owes whom from the stored ledger.

    The roster and ledger are loaded fresh on every call.
    """

    def __init__(
        self,
        household: HouseholdStorageInterface,
        ledger: LedgerStorageInterface,
        calculator: Optional[SettlementCalculator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        settings = settings or get_settings().ledger
        self._household = household
        self._ledger = ledger
        self._calculator = calculator or SettlementCalculator(settings.settlement_epsilon)
        self._audit_logger = audit_logger

    async def _load(self) -> tuple[list[Expense], list[Person]]:
        roster = await self._household.list_persons()
        primaries = [person for person in roster if person.is_parent]
        expenses = await self._ledger.list_expenses()
        return expenses, primaries

    async def calculate(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> list[SettlementInstruction]:
        """
        Compute the settlement transfer between the two primaries.

        Returns:
            Zero or one instruction
        """
        expenses, primaries = await self._load()
        instructions = self._calculator.settle(expenses, primaries)

        if self._audit_logger:
            await self._audit_logger.log_settlement_calculated(
                instruction_count=len(instructions),
                expense_count=len(expenses),
                correlation_id=correlation_id,
            )

        return instructions

    async def balances(self) -> list[PersonBalance]:
        """Paid/owed/balance per primary member."""
        expenses, primaries = await self._load()
        return self._calculator.summarize(expenses, primaries)


class RecurringExpenseFlow:
    """
    Materializes every due recurring obligation.

    Each obligation is ticked independently. A failure is recorded and
    audited, the obligation keeps its old last_materialized, and the
    next run tries it again.

    Ticks are not retried within a run: a tick performs two writes, and
    repeating it after the first one landed would store the expense twice.
    """

    def __init__(
        self,
        household: HouseholdStorageInterface,
        ledger: LedgerStorageInterface,
        obligations: ObligationStorageInterface,
        engine: Optional[AllocationEngine] = None,
        clock: Clock = utc_now,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._household = household
        self._obligations = obligations
        self._clock = clock
        self._audit_logger = audit_logger
        self._scheduler = RecurrenceScheduler(
            ledger=ledger,
            obligations=obligations,
            engine=engine,
            clock=clock,
        )

    async def process_due(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringRunResult:
        """
        Run every active obligation through the scheduler once.

        Returns:
            What was created, skipped and what failed
        """
        correlation_id = correlation_id or create_correlation_id()
        now = ensure_utc(self._clock())
        result = RecurringRunResult(ran_at=now)

        roster = await self._household.list_persons()
        obligations = await self._obligations.list_active_obligations()

        for obligation in obligations:
            if not is_due(obligation, now):
                result.skipped.append(obligation.id)
                continue

            try:
                expense = await self._scheduler.tick(obligation, roster, now)
            except (InvalidAllocationRequest, StorageError) as e:
                result.failures[obligation.id] = str(e)
                logger.error(
                    "recurring_obligation_failed",
                    obligation_id=str(obligation.id),
                    error=str(e),
                )
                if self._audit_logger:
                    await self._audit_logger.log_recurring_expense_failed(
                        obligation_id=obligation.id,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                continue

            result.created.append(expense)
            if self._audit_logger:
                await self._audit_logger.log_recurring_expense_created(
                    obligation_id=obligation.id,
                    expense_id=expense.id,
                    frequency=obligation.frequency.value,
                    correlation_id=correlation_id,
                )

        return result


def create_app_components(
    household: Optional[HouseholdStorageInterface] = None,
    ledger: Optional[LedgerStorageInterface] = None,
    obligations: Optional[ObligationStorageInterface] = None,
    clock: Clock = utc_now,
    settings: Optional[LedgerSettings] = None,
) -> tuple[ExpenseFlow, SettlementFlow, RecurringExpenseFlow]:
    """
    Factory function to create all application components.

    Any store not supplied falls back to an in-memory one; the household
    defaults to the sample roster.

    Returns:
        (expense_flow, settlement_flow, recurring_flow)
    """
    setup_logging(get_settings().app.log_level)
    settings = settings or get_settings().ledger

    if household is None:
        persons, categories = default_household()
        household = InMemoryHouseholdStorage(persons, categories)
    if ledger is None:
        ledger = InMemoryLedgerStorage()
    if obligations is None:
        obligations = InMemoryObligationStorage()

    audit_logger = AuditLogger(InMemoryAuditStorage())
    engine = AllocationEngine()

    expense_flow = ExpenseFlow(
        household=household,
        ledger=ledger,
        engine=engine,
        audit_logger=audit_logger,
        settings=settings,
    )
    settlement_flow = SettlementFlow(
        household=household,
        ledger=ledger,
        audit_logger=audit_logger,
        settings=settings,
    )
    recurring_flow = RecurringExpenseFlow(
        household=household,
        ledger=ledger,
        obligations=obligations,
        engine=engine,
        clock=clock,
        audit_logger=audit_logger,
    )

    return expense_flow, settlement_flow, recurring_flow
