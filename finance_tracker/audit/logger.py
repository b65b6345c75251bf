"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged, successful or not.
This provides:
1. Traceability of every approval and rejection
2. A trail to reconcile half-finished split expenses against
3. Debugging information for storage failures

The audit logger:
- Never raises (a failing audit write must not undo a ledger write)
- Logs locally first, then persists if storage is configured
- Supports correlation IDs to trace the events of one user action
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finance_tracker.services.storage import AuditStorageInterface


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
    2. Audit storage (append-only, visible on the settings page)
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

        if event.severity == AuditSeverity.CRITICAL:
            self._logger.critical("audit_event", **log_dict)
        elif event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # =========================================================================
    # Submissions
    # =========================================================================

    async def log_expense_posted(
        self,
        user_id: UUID,
        expense_id: UUID,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_posted(
            user_id=user_id,
            expense_id=expense_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_expense_scheduled(
        self,
        user_id: UUID,
        expense_id: UUID,
        validation_id: UUID,
        due: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_scheduled(
            user_id=user_id,
            expense_id=expense_id,
            validation_id=validation_id,
            due=due,
            correlation_id=correlation_id,
        ))

    async def log_split_requested(
        self,
        user_id: UUID,
        expense_id: UUID,
        counterparty_id: UUID,
        split_amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.split_requested(
            user_id=user_id,
            expense_id=expense_id,
            counterparty_id=counterparty_id,
            split_amount=split_amount,
            correlation_id=correlation_id,
        ))

    async def log_saving_submitted(
        self,
        user_id: UUID,
        saving_id: UUID,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.saving_submitted(
            user_id=user_id,
            saving_id=saving_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_return_scheduled(
        self,
        user_id: UUID,
        saving_id: UUID,
        return_amount: str,
        return_date: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.return_scheduled(
            user_id=user_id,
            saving_id=saving_id,
            return_amount=return_amount,
            return_date=return_date,
            correlation_id=correlation_id,
        ))

    async def log_income_added(
        self,
        user_id: UUID,
        transaction_id: UUID,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.income_added(
            user_id=user_id,
            transaction_id=transaction_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_input_rejected(
        self,
        user_id: UUID,
        operation: str,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.input_rejected(
            user_id=user_id,
            operation=operation,
            error_code=error_code,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    # =========================================================================
    # Approvals and maintenance
    # =========================================================================

    async def log_validation_resolved(
        self,
        user_id: UUID,
        validation_id: UUID,
        validation_type: str,
        approved: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.validation_resolved(
            user_id=user_id,
            validation_id=validation_id,
            validation_type=validation_type,
            approved=approved,
            correlation_id=correlation_id,
        ))

    async def log_validation_not_found(
        self,
        user_id: UUID,
        validation_id: UUID,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.validation_not_found(
            user_id=user_id,
            validation_id=validation_id,
            correlation_id=correlation_id,
        ))

    async def log_record_deleted(
        self,
        user_id: UUID,
        entity_type: str,
        entity_id: UUID,
        cascaded: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.record_deleted(
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            cascaded=cascaded,
            correlation_id=correlation_id,
        ))

    async def log_profile_updated(self, user_id: UUID, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.profile_updated(
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    # =========================================================================
    # Failures
    # =========================================================================

    async def log_persistence_failed(
        self,
        user_id: UUID,
        operation: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a storage write that failed."""
        await self.log(AuditEventBuilder.persistence_failed(
            user_id=user_id,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_partial_split_failed(
        self,
        user_id: UUID,
        expense_id: UUID,
        counterparty_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a split whose counterparty gate could not be written."""
        await self.log(AuditEventBuilder.partial_split_failed(
            user_id=user_id,
            expense_id=expense_id,
            counterparty_id=counterparty_id,
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
        """Log an unexpected error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def get_trail(self, correlation_id: UUID) -> list[AuditEvent]:
        """All persisted events of one user action, oldest first."""
        if self._storage is None:
            return []
        try:
            return await self._storage.get_events_by_correlation_id(correlation_id)
        except Exception as e:
            self._logger.error("audit_read_failed", error=str(e))
            return []


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., approving a split).
    Pass it through all subsequent operations.
    """
    return uuid4()
