"""
Ledger Store

The in-memory view of one user's ledger, kept consistent with storage.

DESIGN DECISION: Every mutator is write-through. Storage is written first;
the in-memory collections change only after storage accepted the write.
A failed write leaves memory untouched and raises PersistenceFailure.

Readers get snapshots (copies), so holding a list while a mutation runs
never shows a half-applied change.

This store enforces one invariant of its own: a user never has two live
gates of the same type for the same record.
"""

from typing import Awaitable, Optional
from uuid import UUID

import structlog

from finance_tracker.errors import InvalidInput, PersistenceFailure
from finance_tracker.models.ledger import (
    Expense,
    Saving,
    Transaction,
    ValidationItem,
)
from finance_tracker.services.storage.interface import LedgerStorageInterface


logger = structlog.get_logger(__name__)


class LedgerStore:
    """
    Authoritative collections for the signed-in user.

    Collections are keyed by record id and keep insertion order.
    """

    def __init__(self, user_id: UUID, storage: LedgerStorageInterface):
        self._user_id = user_id
        self._storage = storage

        self._expenses: dict[UUID, Expense] = {}
        self._savings: dict[UUID, Saving] = {}
        self._transactions: dict[UUID, Transaction] = {}
        self._validations: dict[UUID, ValidationItem] = {}

    @property
    def user_id(self) -> UUID:
        return self._user_id

    async def load(self) -> None:
        """Replace the in-memory view with what storage holds for this user."""
        try:
            expenses = await self._storage.list_expenses(self._user_id)
            savings = await self._storage.list_savings(self._user_id)
            transactions = await self._storage.list_transactions(self._user_id)
            validations = await self._storage.list_validations(self._user_id)
        except Exception as e:
            raise PersistenceFailure("load ledger", e) from e

        self._expenses = {e.id: e for e in expenses}
        self._savings = {s.id: s for s in savings}
        self._transactions = {t.id: t for t in transactions}
        self._validations = {v.id: v for v in validations}

        logger.info(
            "ledger_loaded",
            user_id=str(self._user_id),
            expenses=len(self._expenses),
            savings=len(self._savings),
            transactions=len(self._transactions),
            validations=len(self._validations),
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def list_expenses(self) -> list[Expense]:
        return [e.model_copy() for e in self._expenses.values()]

    def list_savings(self) -> list[Saving]:
        return [s.model_copy() for s in self._savings.values()]

    def list_transactions(self) -> list[Transaction]:
        return list(self._transactions.values())

    def list_validations(self) -> list[ValidationItem]:
        return list(self._validations.values())

    def get_expense_by_id(self, expense_id: UUID) -> Optional[Expense]:
        expense = self._expenses.get(expense_id)
        return expense.model_copy() if expense else None

    def get_saving_by_id(self, saving_id: UUID) -> Optional[Saving]:
        saving = self._savings.get(saving_id)
        return saving.model_copy() if saving else None

    def get_validation_by_id(self, validation_id: UUID) -> Optional[ValidationItem]:
        return self._validations.get(validation_id)

    def transactions_for(self, related_id: UUID) -> list[Transaction]:
        """Transactions produced by one expense or saving."""
        return [t for t in self._transactions.values() if t.related_id == related_id]

    def validations_for(self, related_id: UUID) -> list[ValidationItem]:
        """Live gates on one expense or saving."""
        return [v for v in self._validations.values() if v.related_id == related_id]

    # =========================================================================
    # Write-through mutators
    # =========================================================================

    async def _persist(self, operation: str, write: Awaitable) -> None:
        try:
            await write
        except Exception as e:
            logger.error(
                "ledger_write_failed",
                operation=operation,
                user_id=str(self._user_id),
                error=str(e),
            )
            raise PersistenceFailure(operation, e) from e

    def _check_owner(self, record_user_id: UUID, kind: str) -> None:
        if record_user_id != self._user_id:
            raise InvalidInput(f"{kind} belongs to another user")

    async def add_expense(self, expense: Expense) -> Expense:
        self._check_owner(expense.user_id, "Expense")
        await self._persist("save expense", self._storage.save_expense(expense))
        self._expenses[expense.id] = expense.model_copy()
        return expense

    async def update_expense(self, expense: Expense) -> Expense:
        self._check_owner(expense.user_id, "Expense")
        await self._persist("update expense", self._storage.update_expense(expense))
        self._expenses[expense.id] = expense.model_copy()
        return expense

    async def delete_expense(self, expense_id: UUID) -> None:
        await self._persist(
            "delete expense",
            self._storage.delete_expense(self._user_id, expense_id),
        )
        self._expenses.pop(expense_id, None)

    async def add_saving(self, saving: Saving) -> Saving:
        self._check_owner(saving.user_id, "Saving")
        await self._persist("save saving", self._storage.save_saving(saving))
        self._savings[saving.id] = saving.model_copy()
        return saving

    async def update_saving(self, saving: Saving) -> Saving:
        self._check_owner(saving.user_id, "Saving")
        await self._persist("update saving", self._storage.update_saving(saving))
        self._savings[saving.id] = saving.model_copy()
        return saving

    async def delete_saving(self, saving_id: UUID) -> None:
        await self._persist(
            "delete saving",
            self._storage.delete_saving(self._user_id, saving_id),
        )
        self._savings.pop(saving_id, None)

    async def add_transaction(self, transaction: Transaction) -> Transaction:
        self._check_owner(transaction.user_id, "Transaction")
        await self._persist(
            "save transaction",
            self._storage.save_transaction(transaction),
        )
        self._transactions[transaction.id] = transaction
        return transaction

    async def delete_transaction(self, transaction_id: UUID) -> None:
        await self._persist(
            "delete transaction",
            self._storage.delete_transaction(self._user_id, transaction_id),
        )
        self._transactions.pop(transaction_id, None)

    async def add_validation(self, item: ValidationItem) -> ValidationItem:
        """Queue a gate for the current user."""
        self._check_owner(item.user_id, "Validation item")
        for live in self._validations.values():
            if live.related_id == item.related_id and live.type == item.type:
                raise InvalidInput(
                    f"A {item.type.value} validation is already pending "
                    f"for {item.related_id}"
                )
        await self._persist("save validation", self._storage.save_validation(item))
        self._validations[item.id] = item
        return item

    async def delete_validation(self, validation_id: UUID) -> None:
        await self._persist(
            "delete validation",
            self._storage.delete_validation(self._user_id, validation_id),
        )
        self._validations.pop(validation_id, None)

    # =========================================================================
    # Writes into another user's partition
    # =========================================================================
    # Split expenses touch two ledgers. These calls go straight to storage;
    # the other user's session picks the change up on its next load().

    async def write_foreign_validation(self, item: ValidationItem) -> ValidationItem:
        """Queue a gate in another user's validation list."""
        await self._persist(
            "save validation for another user",
            self._storage.save_validation(item),
        )
        if item.user_id == self._user_id:
            self._validations[item.id] = item
        return item

    async def get_foreign_expense(
        self,
        owner_id: UUID,
        expense_id: UUID,
    ) -> Optional[Expense]:
        """Read an expense from any user's partition."""
        if owner_id == self._user_id:
            return self.get_expense_by_id(expense_id)
        try:
            return await self._storage.get_expense(owner_id, expense_id)
        except Exception as e:
            raise PersistenceFailure("read expense of another user", e) from e

    async def update_foreign_expense(self, expense: Expense) -> Expense:
        """Patch an expense owned by another user (split status only)."""
        await self._persist(
            "update expense of another user",
            self._storage.update_expense(expense),
        )
        if expense.user_id == self._user_id:
            self._expenses[expense.id] = expense.model_copy()
        return expense
