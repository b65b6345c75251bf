"""Test helpers shared by the ledger test modules."""

from datetime import datetime
from decimal import Decimal

from finance_tracker.services.storage import InMemoryLedgerStorage, StorageError


NOW = datetime(2024, 6, 15, 10, 30)
TODAY = NOW.date()


def fixed_clock() -> datetime:
    return NOW


class FlakyLedgerStorage(InMemoryLedgerStorage):
    """In-memory storage that fails the operations named in `fail_on`."""

    def __init__(self):
        super().__init__()
        self.fail_on: set[str] = set()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StorageError(f"{operation} unavailable")

    async def save_expense(self, expense):
        self._maybe_fail("save_expense")
        return await super().save_expense(expense)

    async def update_expense(self, expense):
        self._maybe_fail("update_expense")
        return await super().update_expense(expense)

    async def save_saving(self, saving):
        self._maybe_fail("save_saving")
        return await super().save_saving(saving)

    async def update_saving(self, saving):
        self._maybe_fail("update_saving")
        return await super().update_saving(saving)

    async def save_transaction(self, transaction):
        self._maybe_fail("save_transaction")
        return await super().save_transaction(transaction)

    async def save_validation(self, item):
        self._maybe_fail("save_validation")
        return await super().save_validation(item)

    async def delete_validation(self, user_id, validation_id):
        self._maybe_fail("delete_validation")
        return await super().delete_validation(user_id, validation_id)


def expense_input(**overrides) -> dict:
    data = {
        "title": "Groceries",
        "amount": Decimal("500"),
        "date": TODAY,
        "category": "food",
    }
    data.update(overrides)
    return data


def saving_input(**overrides) -> dict:
    data = {
        "title": "Monthly SIP",
        "amount": Decimal("2000"),
        "date": TODAY,
        "type": "sip",
        "frequency": "monthly",
    }
    data.update(overrides)
    return data
