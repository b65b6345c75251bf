"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory storage for testing
3. Keep the mutation rules decoupled from storage implementation

Every ledger operation is scoped by `user_id`. A backend must never return
or modify a record that belongs to a different user than the one asked for.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.ledger import (
    Expense,
    Saving,
    Transaction,
    UserProfile,
    ValidationItem,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for the four ledger record kinds.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    # -- Expenses ------------------------------------------------------------

    @abstractmethod
    async def save_expense(self, expense: Expense) -> bool:
        """
        Save a new expense.

        Raises:
            StorageError: If save fails
            DuplicateError: If an expense with this ID exists
        """
        pass

    @abstractmethod
    async def get_expense(self, user_id: UUID, expense_id: UUID) -> Optional[Expense]:
        """Return the user's expense, or None if not found."""
        pass

    @abstractmethod
    async def update_expense(self, expense: Expense) -> bool:
        """
        Replace an existing expense.

        Raises:
            StorageError: If update fails
            NotFoundError: If the expense doesn't exist for its user
        """
        pass

    @abstractmethod
    async def delete_expense(self, user_id: UUID, expense_id: UUID) -> bool:
        """Delete an expense. Returns False if nothing was deleted."""
        pass

    @abstractmethod
    async def list_expenses(self, user_id: UUID) -> list[Expense]:
        """List all of the user's expenses in insertion order."""
        pass

    # -- Savings -------------------------------------------------------------

    @abstractmethod
    async def save_saving(self, saving: Saving) -> bool:
        pass

    @abstractmethod
    async def get_saving(self, user_id: UUID, saving_id: UUID) -> Optional[Saving]:
        pass

    @abstractmethod
    async def update_saving(self, saving: Saving) -> bool:
        pass

    @abstractmethod
    async def delete_saving(self, user_id: UUID, saving_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_savings(self, user_id: UUID) -> list[Saving]:
        pass

    # -- Transactions (append-only, no update) -------------------------------

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> bool:
        pass

    @abstractmethod
    async def delete_transaction(self, user_id: UUID, transaction_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_transactions(self, user_id: UUID) -> list[Transaction]:
        pass

    # -- Validation items (created and consumed, never updated) --------------

    @abstractmethod
    async def save_validation(self, item: ValidationItem) -> bool:
        pass

    @abstractmethod
    async def get_validation(
        self,
        user_id: UUID,
        validation_id: UUID,
    ) -> Optional[ValidationItem]:
        pass

    @abstractmethod
    async def delete_validation(self, user_id: UUID, validation_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_validations(self, user_id: UUID) -> list[ValidationItem]:
        pass


class ProfileStorageInterface(ABC):
    """
    Abstract interface for user profiles.

    Profiles supply the monthly salary and let a split target be
    found by username.
    """

    @abstractmethod
    async def save_profile(self, profile: UserProfile) -> bool:
        """Create or replace a profile."""
        pass

    @abstractmethod
    async def get_profile(self, user_id: UUID) -> Optional[UserProfile]:
        pass

    @abstractmethod
    async def get_profile_by_username(self, username: str) -> Optional[UserProfile]:
        """Case-insensitive lookup by username."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Events for one user action, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Events for one record, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class MalformedRecordError(StorageError):
    """A stored row could not be mapped to a ledger record."""
    pass
