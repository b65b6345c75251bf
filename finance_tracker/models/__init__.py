"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.ledger import (
    CheckResult,
    Expense,
    ExpenseCategory,
    ExpenseKind,
    ExpenseSubmission,
    Frequency,
    IncomeSubmission,
    Saving,
    SavingSubmission,
    SavingType,
    SplitStatus,
    Transaction,
    TransactionType,
    UserProfile,
    ValidationIssue,
    ValidationItem,
    ValidationType,
    to_paisa,
    utc_now,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CheckResult",
    "Expense",
    "ExpenseCategory",
    "ExpenseKind",
    "ExpenseSubmission",
    "Frequency",
    "IncomeSubmission",
    "Saving",
    "SavingSubmission",
    "SavingType",
    "SplitStatus",
    "Transaction",
    "TransactionType",
    "UserProfile",
    "ValidationIssue",
    "ValidationItem",
    "ValidationType",
    "to_paisa",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
