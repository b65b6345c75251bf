"""
Audit Models for Finance Tracker

Every mutation of the ledger is logged for audit purposes.
This provides:
1. Traceability of every approval and rejection
2. Debugging information when a write fails half way
3. A record to reconcile orphaned split expenses against

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finance_tracker.models.ledger import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every branch of the mutation flow has its own event type.
    """
    # Submissions
    EXPENSE_POSTED = "expense_posted"
    EXPENSE_SCHEDULED = "expense_scheduled"
    SPLIT_REQUESTED = "split_requested"
    SAVING_SUBMITTED = "saving_submitted"
    RETURN_SCHEDULED = "return_scheduled"
    INCOME_ADDED = "income_added"
    INPUT_REJECTED = "input_rejected"

    # Approvals
    VALIDATION_APPROVED = "validation_approved"
    VALIDATION_REJECTED = "validation_rejected"
    VALIDATION_NOT_FOUND = "validation_not_found"

    # Maintenance
    RECORD_DELETED = "record_deleted"
    PROFILE_UPDATED = "profile_updated"

    # Failures
    PERSISTENCE_FAILED = "persistence_failed"
    PARTIAL_SPLIT_FAILED = "partial_split_failed"
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

    This is the core unit of our audit trail.
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

    # Context - which user and which record
    user_id: Optional[UUID] = Field(
        default=None,
        description="User whose ledger was touched"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'saving', 'validation')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate events from one user action"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": str(self.user_id) if self.user_id else None,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json, error_code,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.user_id) if self.user_id else "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_code or "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_posted(user_id, expense_id, "500.00", correlation_id)
        event = AuditEventBuilder.validation_resolved(user_id, item_id, "saving", True, correlation_id)
    """

    @staticmethod
    def expense_posted(
        user_id: UUID,
        expense_id: UUID,
        amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_POSTED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense posted: ₹{amount}",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def expense_scheduled(
        user_id: UUID,
        expense_id: UUID,
        validation_id: UUID,
        due: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_SCHEDULED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Future expense awaiting approval (due {due})",
            details={"validation_id": str(validation_id), "due": due},
            is_user_action=True,
        )

    @staticmethod
    def split_requested(
        user_id: UUID,
        expense_id: UUID,
        counterparty_id: UUID,
        split_amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPLIT_REQUESTED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Split of ₹{split_amount} requested",
            details={
                "counterparty_id": str(counterparty_id),
                "split_amount": split_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def saving_submitted(
        user_id: UUID,
        saving_id: UUID,
        amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVING_SUBMITTED,
            user_id=user_id,
            entity_type="saving",
            entity_id=saving_id,
            correlation_id=correlation_id,
            description=f"Saving of ₹{amount} awaiting approval",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def return_scheduled(
        user_id: UUID,
        saving_id: UUID,
        return_amount: str,
        return_date: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RETURN_SCHEDULED,
            user_id=user_id,
            entity_type="saving",
            entity_id=saving_id,
            correlation_id=correlation_id,
            description=f"Return of ₹{return_amount} expected on {return_date}",
            details={"return_amount": return_amount, "return_date": return_date},
        )

    @staticmethod
    def income_added(
        user_id: UUID,
        transaction_id: UUID,
        amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_ADDED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Extra income of ₹{amount} added",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def input_rejected(
        user_id: UUID,
        operation: str,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INPUT_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{operation} rejected before any write",
            details={"operation": operation},
            error_code=error_code,
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def validation_resolved(
        user_id: UUID,
        validation_id: UUID,
        validation_type: str,
        approved: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.VALIDATION_APPROVED
                if approved
                else AuditEventType.VALIDATION_REJECTED
            ),
            user_id=user_id,
            entity_type="validation",
            entity_id=validation_id,
            correlation_id=correlation_id,
            description=f"{validation_type} {'approved' if approved else 'rejected'}",
            details={"validation_type": validation_type},
            is_user_action=True,
        )

    @staticmethod
    def validation_not_found(
        user_id: UUID,
        validation_id: UUID,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="validation",
            entity_id=validation_id,
            correlation_id=correlation_id,
            description="Validation item missing or already resolved",
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        user_id: UUID,
        entity_type: str,
        entity_id: UUID,
        cascaded: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} deleted with {cascaded} linked records",
            details={"cascaded": cascaded},
            is_user_action=True,
        )

    @staticmethod
    def profile_updated(user_id: UUID, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_UPDATED,
            user_id=user_id,
            entity_type="profile",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Profile updated",
            is_user_action=True,
        )

    @staticmethod
    def persistence_failed(
        user_id: UUID,
        operation: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Storage write failed during: {operation}",
            details={"operation": operation},
            error_code="persistence_failure",
            error_message=error_message,
        )

    @staticmethod
    def partial_split_failed(
        user_id: UUID,
        expense_id: UUID,
        counterparty_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTIAL_SPLIT_FAILED,
            severity=AuditSeverity.CRITICAL,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description="Split expense saved without a counterparty approval request",
            details={"counterparty_id": str(counterparty_id)},
            error_code="partial_split_failure",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
