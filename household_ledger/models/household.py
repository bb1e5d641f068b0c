"""
Core Data Models for Household Ledger

These models define the schemas for everything the allocation,
settlement and recurrence engines consume or produce.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Support the audit trail

DESIGN DECISION: Money is always Decimal. Shares are kept at full
Decimal precision; rounding to cents happens only when rendering.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from household_ledger.formatting import format_currency


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so every stored moment is comparable."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class SplitStrategy(str, Enum):
    """
    How an expense amount is divided into shares.

    EQUAL and WEIGHTED only ever involve primary members.
    ASSIGNED names the recipients explicitly.
    """
    EQUAL = "EQUAL"
    WEIGHTED = "WEIGHTED"
    ASSIGNED = "ASSIGNED"


class Frequency(str, Enum):
    """Recurrence frequency of an obligation."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class ExpensePeriod(str, Enum):
    """Reporting periods for filtering the expense history."""
    ALL = "all"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"
    THIS_YEAR = "this_year"


# =============================================================================
# HOUSEHOLD
# =============================================================================

class Person(BaseModel):
    """
    A household member.

    Primary members (is_parent=True) pay and settle.
    Dependents can drive costs but never take part in settlement.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique person ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    is_parent: bool = Field(
        default=False,
        description="Primary household member (payer/debtor in settlement)"
    )
    income: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Income figure, only used by weighted splits"
    )
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_primary(self) -> bool:
        return self.is_parent


class Category(BaseModel):
    """Expense category (rent, groceries, ...)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100
    )


# =============================================================================
# EXPENSES
# =============================================================================

class ExpenseShare(BaseModel):
    """One person's part of an expense."""

    person_id: UUID
    person_name: str = Field(
        default="",
        description="Display name at allocation time"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Share amount, unrounded"
    )


class Expense(BaseModel):
    """
    A recorded expense together with its share set.

    CRITICAL: An expense and its shares are always written as one unit.
    Edits replace the whole share set; shares are never patched one by one.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Expense amount"
    )
    description: str = Field(
        default="",
        max_length=500
    )
    date: datetime = Field(
        default_factory=utc_now,
        description="When the expense happened"
    )
    payer_id: UUID = Field(
        ...,
        description="Person who paid"
    )
    category_id: Optional[UUID] = None
    split_strategy: SplitStrategy
    shares: list[ExpenseShare] = Field(default_factory=list)

    # Set when the expense was materialized from a recurring obligation
    recurring_obligation_id: Optional[UUID] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator('date', 'created_at', 'updated_at')
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def share_total(self) -> Decimal:
        return sum((share.amount for share in self.shares), Decimal("0"))

    def is_balanced(self, tolerance: Decimal = Decimal("0.01")) -> bool:
        """Do the shares add up to the amount (within tolerance)?"""
        return abs(self.amount - self.share_total) <= tolerance

    def share_for(self, person_id: UUID) -> Decimal:
        return sum(
            (share.amount for share in self.shares if share.person_id == person_id),
            Decimal("0"),
        )


class ExpenseDraft(BaseModel):
    """
    Expense input as submitted by a user, before validation.

    CRITICAL: This is UNVERIFIED data. Fields are deliberately loose so
    the validator can report every problem instead of failing on the first.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    draft_id: UUID = Field(
        default_factory=uuid4,
        description="Unique ID for this submission"
    )
    amount: Optional[Decimal] = None
    description: str = ""
    payer_id: Optional[UUID] = None
    category_id: Optional[UUID] = None
    split_strategy: str = Field(
        default=SplitStrategy.EQUAL.value,
        description="Raw split tag; checked by the validator"
    )
    recipient_ids: list[UUID] = Field(default_factory=list)
    date: Optional[datetime] = None

    @property
    def strategy(self) -> Optional[SplitStrategy]:
        """The parsed split strategy, or None for an unknown tag."""
        try:
            return SplitStrategy(self.split_strategy)
        except ValueError:
            return None


class RecurringObligation(BaseModel):
    """
    Template for a recurring expense (rent, subscriptions, ...).

    last_materialized is advanced only by the recurrence scheduler,
    and only after the generated expense has been persisted.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal = Field(
        ...,
        gt=0
    )
    description: str = Field(
        default="",
        max_length=500
    )
    payer_id: UUID
    category_id: Optional[UUID] = None
    split_strategy: SplitStrategy
    frequency: Frequency
    recipient_ids: list[UUID] = Field(
        default_factory=list,
        description="Explicit recipients for ASSIGNED splits"
    )
    start_date: date = Field(default_factory=lambda: utc_now().date())
    end_date: Optional[date] = None
    last_materialized: Optional[datetime] = None
    is_active: bool = True

    @field_validator('last_materialized')
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @model_validator(mode='after')
    def validate_dates(self) -> 'RecurringObligation':
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self


# =============================================================================
# SETTLEMENT
# =============================================================================

class SettlementInstruction(BaseModel):
    """A single payment that zeroes the net balance between two primaries."""

    from_person_id: UUID
    from_person_name: str
    to_person_id: UUID
    to_person_name: str
    amount: Decimal = Field(
        ...,
        gt=0
    )

    def describe(self, currency: str = "EUR") -> str:
        return (
            f"{self.from_person_name} pays {self.to_person_name} "
            f"{format_currency(self.amount, currency)}"
        )


class PersonBalance(BaseModel):
    """What a primary member fronted versus what they owe."""

    person_id: UUID
    person_name: str
    paid: Decimal = Decimal("0")
    owed: Decimal = Decimal("0")

    @property
    def balance(self) -> Decimal:
        return self.paid - self.owed


class ExpenseStats(BaseModel):
    """Headline numbers over the expense history."""

    total: Decimal = Decimal("0")
    this_month: Decimal = Decimal("0")
    expense_count: int = Field(default=0, ge=0)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_person')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (required fields, ranges, tags)
    Stage 2: Semantic validation (checks against the current roster)
    """

    draft_id: UUID
    validated_at: datetime = Field(default_factory=utc_now)

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)

    # Warnings don't block but should be shown
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")


# =============================================================================
# RECURRING RUNS
# =============================================================================

class RecurringRunResult(BaseModel):
    """Outcome of one pass over the recurring obligations."""

    ran_at: datetime
    created: list[Expense] = Field(default_factory=list)
    skipped: list[UUID] = Field(
        default_factory=list,
        description="Active obligations that were not due"
    )
    failures: dict[UUID, str] = Field(
        default_factory=dict,
        description="Obligation ID -> error message"
    )

    @property
    def succeeded(self) -> bool:
        return not self.failures
