"""Ledger query and totals package."""

from finance_tracker.queries.executor import (
    CategoryTotal,
    LedgerQueryExecutor,
    SavingTypeTotal,
)
from finance_tracker.queries.totals import (
    LedgerTotals,
    compute_totals,
    extra_income,
    remaining_balance,
    total_expenses,
    total_saved,
)

__all__ = [
    "CategoryTotal",
    "LedgerQueryExecutor",
    "LedgerTotals",
    "SavingTypeTotal",
    "compute_totals",
    "extra_income",
    "remaining_balance",
    "total_expenses",
    "total_saved",
]
