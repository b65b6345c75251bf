"""Services package."""

from finance_tracker.services.identity import IdentityProvider
from finance_tracker.services.notifications import (
    CollectingNotificationSink,
    LogNotificationSink,
    NotificationSink,
    Outcome,
    OutcomeStatus,
)
from finance_tracker.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    GoogleSheetsProfileStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    InMemoryProfileStorage,
    LedgerStorageInterface,
    MalformedRecordError,
    NotFoundError,
    ProfileStorageInterface,
    StorageError,
)

__all__ = [
    # Identity
    "IdentityProvider",
    # Notifications
    "CollectingNotificationSink",
    "LogNotificationSink",
    "NotificationSink",
    "Outcome",
    "OutcomeStatus",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "GoogleSheetsProfileStorage",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "InMemoryProfileStorage",
    "LedgerStorageInterface",
    "MalformedRecordError",
    "NotFoundError",
    "ProfileStorageInterface",
    "StorageError",
]
