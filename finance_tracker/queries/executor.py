"""
Ledger Query Execution

DESIGN DECISION: Queries are DETERMINISTIC and READ-ONLY.
Every figure shown on the dashboard, history and list pages comes from
this module, computed from the store's current snapshot. Nothing here
writes, and nothing here is cached.

Groupings only count validated records, same as the totals.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from finance_tracker.ledger.store import LedgerStore
from finance_tracker.models.ledger import (
    Expense,
    ExpenseCategory,
    ExpenseKind,
    Saving,
    SavingType,
    Transaction,
    TransactionType,
    ValidationItem,
)
from finance_tracker.queries.totals import ZERO, LedgerTotals, compute_totals


class CategoryTotal(BaseModel):
    """Validated spend in one expense category."""

    category: ExpenseCategory
    amount: Decimal
    count: int


class SavingTypeTotal(BaseModel):
    """Validated savings in one vehicle and its share of all savings."""

    type: SavingType
    amount: Decimal
    percentage: float


def _matches(search: Optional[str], *fields: Optional[str]) -> bool:
    """Case-insensitive substring match over the given text fields."""
    if not search:
        return True
    needle = search.strip().lower()
    return any(needle in (f or "").lower() for f in fields)


class LedgerQueryExecutor:
    """
    Read-only views over one user's ledger.

    GUARANTEES:
    - Only returns records that are in the store
    - Never modifies the store
    - Empty results are empty lists, never errors
    """

    def __init__(self, store: LedgerStore):
        self._store = store

    def totals(self, monthly_salary: Optional[Decimal]) -> LedgerTotals:
        return compute_totals(
            monthly_salary,
            self._store.list_expenses(),
            self._store.list_savings(),
            self._store.list_transactions(),
        )

    # =========================================================================
    # Dashboard
    # =========================================================================

    def expenses_by_category(self) -> list[CategoryTotal]:
        """Validated expenses grouped by category, largest first."""
        groups: dict[ExpenseCategory, list[Decimal]] = {}
        for expense in self._store.list_expenses():
            if not expense.is_validated:
                continue
            groups.setdefault(expense.category, []).append(expense.amount)

        result = [
            CategoryTotal(category=category, amount=sum(amounts, ZERO), count=len(amounts))
            for category, amounts in groups.items()
        ]
        return sorted(result, key=lambda c: c.amount, reverse=True)

    def savings_by_type(self) -> list[SavingTypeTotal]:
        """Validated savings grouped by type with each type's share."""
        groups: dict[SavingType, Decimal] = {}
        for saving in self._store.list_savings():
            if not saving.is_validated:
                continue
            groups[saving.type] = groups.get(saving.type, ZERO) + saving.amount

        grand_total = sum(groups.values(), ZERO)
        result = []
        for saving_type, amount in groups.items():
            percentage = float(amount / grand_total * 100) if grand_total else 0.0
            result.append(
                SavingTypeTotal(
                    type=saving_type,
                    amount=amount,
                    percentage=round(percentage, 1),
                )
            )
        return sorted(result, key=lambda s: s.amount, reverse=True)

    def recent_transactions(self, limit: int = 5) -> list[Transaction]:
        """Newest transactions by date, most recently created first on ties."""
        return self._newest_first(self._store.list_transactions())[:limit]

    # =========================================================================
    # History and list pages
    # =========================================================================

    def search_transactions(
        self,
        search: Optional[str] = None,
        type: Optional[TransactionType] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        """
        Filter the transaction history.

        The date range is inclusive on both ends.
        """
        matches = []
        for t in self._store.list_transactions():
            if not _matches(search, t.title, t.description):
                continue
            if type is not None and t.type != type:
                continue
            if date_from is not None and t.date < date_from:
                continue
            if date_to is not None and t.date > date_to:
                continue
            matches.append(t)
        return self._newest_first(matches)

    def search_expenses(
        self,
        search: Optional[str] = None,
        category: Optional[ExpenseCategory] = None,
        kind: Optional[ExpenseKind] = None,
    ) -> list[Expense]:
        matches = [
            e for e in self._store.list_expenses()
            if _matches(search, e.title, e.description)
            and (category is None or e.category == category)
            and (kind is None or e.kind == kind)
        ]
        return self._newest_first(matches)

    def search_savings(
        self,
        search: Optional[str] = None,
        type: Optional[SavingType] = None,
    ) -> list[Saving]:
        matches = [
            s for s in self._store.list_savings()
            if _matches(search, s.title, s.description)
            and (type is None or s.type == type)
        ]
        return self._newest_first(matches)

    def pending_validations(self) -> list[ValidationItem]:
        """The validation queue, soonest expiry first."""
        return sorted(self._store.list_validations(), key=lambda v: v.expires_at)

    @staticmethod
    def _newest_first(records: list) -> list:
        return sorted(records, key=lambda r: (r.date, r.created_at), reverse=True)
