"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Complete traceability
2. Debugging capability for recurring runs
3. A history the household can look back on

The audit logger:
- Always writes a structured local log line
- Gracefully handles storage failures (doesn't break a flow if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from household_ledger.models.audit import AuditEvent, AuditEventBuilder
from household_ledger.services.storage import AuditStorageInterface, StorageError


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except StorageError as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_created(
        self,
        expense_id: UUID,
        description: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a newly recorded expense."""
        await self.log(AuditEventBuilder.expense_created(
            expense_id=expense_id,
            description=description,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_expense_updated(
        self,
        expense_id: UUID,
        amount: str,
        share_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an expense edit (shares replaced)."""
        await self.log(AuditEventBuilder.expense_updated(
            expense_id=expense_id,
            amount=amount,
            share_count=share_count,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        entity_type: str,
        entity_id: UUID,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            entity_type=entity_type,
            entity_id=entity_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        draft_id: UUID,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log validation failure."""
        await self.log(AuditEventBuilder.validation_failed(
            draft_id=draft_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_allocation_rejected(
        self,
        entity_type: str,
        entity_id: UUID,
        split_strategy: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.allocation_rejected(
            entity_type=entity_type,
            entity_id=entity_id,
            split_strategy=split_strategy,
            correlation_id=correlation_id,
        ))

    async def log_settlement_calculated(
        self,
        instruction_count: int,
        expense_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.settlement_calculated(
            instruction_count=instruction_count,
            expense_count=expense_count,
            correlation_id=correlation_id,
        ))

    async def log_recurring_expense_created(
        self,
        obligation_id: UUID,
        expense_id: UUID,
        frequency: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.recurring_expense_created(
            obligation_id=obligation_id,
            expense_id=expense_id,
            frequency=frequency,
            correlation_id=correlation_id,
        ))

    async def log_recurring_expense_failed(
        self,
        obligation_id: UUID,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.recurring_expense_failed(
            obligation_id=obligation_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new action (e.g., a recurring run).
    Pass it through all subsequent operations.
    """
    return uuid4()


def setup_logging(log_level: str = "INFO") -> None:
    """
    Route structlog output to stdout at the given level.

    structlog renders each event to a JSON string, so the stdlib
    handler only prints the message.
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
