"""
In-Memory Storage Implementation

Keeps every record in process memory. Used by the test suite and when
the app runs without Google Sheets credentials (`STORAGE_BACKEND=memory`).

Records are copied on the way in and on the way out so callers can never
mutate stored state by holding on to a returned object.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.ledger import (
    Expense,
    Saving,
    Transaction,
    UserProfile,
    ValidationItem,
)
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    ProfileStorageInterface,
)


class _RecordTable:
    """Insertion-ordered table of one record kind, keyed by id."""

    def __init__(self, kind: str):
        self.kind = kind
        self._rows: dict[UUID, BaseModel] = {}

    def insert(self, record: BaseModel) -> bool:
        if record.id in self._rows:
            raise DuplicateError(f"{self.kind} already exists: {record.id}")
        self._rows[record.id] = record.model_copy(deep=True)
        return True

    def get(self, user_id: UUID, record_id: UUID) -> Optional[BaseModel]:
        row = self._rows.get(record_id)
        if row is None or row.user_id != user_id:
            return None
        return row.model_copy(deep=True)

    def replace(self, record: BaseModel) -> bool:
        row = self._rows.get(record.id)
        if row is None or row.user_id != record.user_id:
            raise NotFoundError(f"{self.kind} not found: {record.id}")
        self._rows[record.id] = record.model_copy(deep=True)
        return True

    def delete(self, user_id: UUID, record_id: UUID) -> bool:
        row = self._rows.get(record_id)
        if row is None or row.user_id != user_id:
            return False
        del self._rows[record_id]
        return True

    def list_for(self, user_id: UUID) -> list:
        return [
            row.model_copy(deep=True)
            for row in self._rows.values()
            if row.user_id == user_id
        ]


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Ledger storage backed by dictionaries."""

    def __init__(self):
        self._expenses = _RecordTable("expense")
        self._savings = _RecordTable("saving")
        self._transactions = _RecordTable("transaction")
        self._validations = _RecordTable("validation")

    async def save_expense(self, expense: Expense) -> bool:
        return self._expenses.insert(expense)

    async def get_expense(self, user_id: UUID, expense_id: UUID) -> Optional[Expense]:
        return self._expenses.get(user_id, expense_id)

    async def update_expense(self, expense: Expense) -> bool:
        return self._expenses.replace(expense)

    async def delete_expense(self, user_id: UUID, expense_id: UUID) -> bool:
        return self._expenses.delete(user_id, expense_id)

    async def list_expenses(self, user_id: UUID) -> list[Expense]:
        return self._expenses.list_for(user_id)

    async def save_saving(self, saving: Saving) -> bool:
        return self._savings.insert(saving)

    async def get_saving(self, user_id: UUID, saving_id: UUID) -> Optional[Saving]:
        return self._savings.get(user_id, saving_id)

    async def update_saving(self, saving: Saving) -> bool:
        return self._savings.replace(saving)

    async def delete_saving(self, user_id: UUID, saving_id: UUID) -> bool:
        return self._savings.delete(user_id, saving_id)

    async def list_savings(self, user_id: UUID) -> list[Saving]:
        return self._savings.list_for(user_id)

    async def save_transaction(self, transaction: Transaction) -> bool:
        return self._transactions.insert(transaction)

    async def delete_transaction(self, user_id: UUID, transaction_id: UUID) -> bool:
        return self._transactions.delete(user_id, transaction_id)

    async def list_transactions(self, user_id: UUID) -> list[Transaction]:
        return self._transactions.list_for(user_id)

    async def save_validation(self, item: ValidationItem) -> bool:
        return self._validations.insert(item)

    async def get_validation(
        self,
        user_id: UUID,
        validation_id: UUID,
    ) -> Optional[ValidationItem]:
        return self._validations.get(user_id, validation_id)

    async def delete_validation(self, user_id: UUID, validation_id: UUID) -> bool:
        return self._validations.delete(user_id, validation_id)

    async def list_validations(self, user_id: UUID) -> list[ValidationItem]:
        return self._validations.list_for(user_id)


class InMemoryProfileStorage(ProfileStorageInterface):
    """Profile storage backed by a dictionary."""

    def __init__(self, profiles: Optional[list[UserProfile]] = None):
        self._profiles: dict[UUID, UserProfile] = {}
        for profile in profiles or []:
            self._profiles[profile.user_id] = profile.model_copy()

    async def save_profile(self, profile: UserProfile) -> bool:
        existing = await self.get_profile_by_username(profile.username)
        if existing and existing.user_id != profile.user_id:
            raise DuplicateError(f"Username already taken: {profile.username}")
        self._profiles[profile.user_id] = profile.model_copy()
        return True

    async def get_profile(self, user_id: UUID) -> Optional[UserProfile]:
        profile = self._profiles.get(user_id)
        return profile.model_copy() if profile else None

    async def get_profile_by_username(self, username: str) -> Optional[UserProfile]:
        wanted = username.strip().lower()
        for profile in self._profiles.values():
            if profile.username == wanted:
                return profile.model_copy()
        return None


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]
