"""
Audit Models for Household Ledger

Every change to the ledger is logged for audit purposes.
This provides:
1. Complete traceability of who changed what
2. Debugging information when a recurring run goes wrong
3. The ability to reconstruct how a settlement came about

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from household_ledger.models.household import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Expense lifecycle
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    SAVE_FAILED = "save_failed"

    # Input checks
    VALIDATION_FAILED = "validation_failed"
    ALLOCATION_REJECTED = "allocation_rejected"

    # Settlement
    SETTLEMENT_CALCULATED = "settlement_calculated"

    # Recurring obligations
    RECURRING_EXPENSE_CREATED = "recurring_expense_created"
    RECURRING_EXPENSE_FAILED = "recurring_expense_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'obligation', 'draft')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one recurring run)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_created(expense_id, "Groceries", "84.20", cid)
    """

    @staticmethod
    def expense_created(
        expense_id: UUID,
        description: str,
        amount: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense saved: {description} - {amount}",
            details={
                "description": description,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_updated(
        expense_id: UUID,
        amount: str,
        share_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense updated, {share_count} shares recalculated",
            details={
                "amount": amount,
                "share_count": share_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: UUID,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description="Expense deleted",
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        entity_type: str,
        entity_id: UUID,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Failed to save {entity_type}",
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(
        draft_id: UUID,
        issues: list[dict],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="draft",
            entity_id=draft_id,
            correlation_id=correlation_id,
            description=f"Expense validation failed with {len(issues)} issues",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def allocation_rejected(
        entity_type: str,
        entity_id: UUID,
        split_strategy: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALLOCATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{split_strategy} allocation produced no shares",
            details={
                "split_strategy": split_strategy,
            },
        )

    @staticmethod
    def settlement_calculated(
        instruction_count: int,
        expense_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_CALCULATED,
            entity_type="settlement",
            correlation_id=correlation_id,
            description=(
                f"Settlement over {expense_count} expenses: "
                f"{instruction_count} transfer(s)"
            ),
            details={
                "instruction_count": instruction_count,
                "expense_count": expense_count,
            },
        )

    @staticmethod
    def recurring_expense_created(
        obligation_id: UUID,
        expense_id: UUID,
        frequency: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_EXPENSE_CREATED,
            entity_type="obligation",
            entity_id=obligation_id,
            correlation_id=correlation_id,
            description=f"Recurring ({frequency}) expense materialized",
            details={
                "expense_id": str(expense_id),
                "frequency": frequency,
            },
        )

    @staticmethod
    def recurring_expense_failed(
        obligation_id: UUID,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_EXPENSE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="obligation",
            entity_id=obligation_id,
            correlation_id=correlation_id,
            description="Recurring expense could not be materialized",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
