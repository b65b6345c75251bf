"""
Derived Totals

DESIGN DECISION: Totals are never stored.
They are recomputed from the ledger records on every read, so there is
no second copy that can drift away from the records it summarises.

Only validated expenses and savings count. Pending ones are money the
user has not confirmed yet.
"""

from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel

from finance_tracker.models.ledger import (
    Expense,
    Saving,
    Transaction,
    TransactionType,
)


ZERO = Decimal("0")

# Transaction types that add to the balance on top of the salary
EXTRA_INCOME_TYPES = frozenset({TransactionType.INCOME, TransactionType.RETURN})


class LedgerTotals(BaseModel):
    """Dashboard figures for one user."""

    monthly_salary: Decimal
    total_saved: Decimal
    total_expenses: Decimal
    extra_income: Decimal
    remaining_balance: Decimal


def total_saved(savings: Iterable[Saving]) -> Decimal:
    return sum((s.amount for s in savings if s.is_validated), ZERO)


def total_expenses(expenses: Iterable[Expense]) -> Decimal:
    return sum((e.amount for e in expenses if e.is_validated), ZERO)


def extra_income(transactions: Iterable[Transaction]) -> Decimal:
    """Income and investment returns, excluding the monthly salary."""
    return sum(
        (t.amount for t in transactions if t.type in EXTRA_INCOME_TYPES),
        ZERO,
    )


def remaining_balance(
    monthly_salary: Optional[Decimal],
    expenses: Iterable[Expense],
    savings: Iterable[Saving],
    transactions: Iterable[Transaction],
) -> Decimal:
    return compute_totals(
        monthly_salary, expenses, savings, transactions
    ).remaining_balance


def compute_totals(
    monthly_salary: Optional[Decimal],
    expenses: Iterable[Expense],
    savings: Iterable[Saving],
    transactions: Iterable[Transaction],
) -> LedgerTotals:
    """
    Compute every dashboard figure in one pass over the records.

    A missing salary counts as zero.
    """
    salary = monthly_salary or ZERO
    saved = total_saved(savings)
    spent = total_expenses(expenses)
    extra = extra_income(transactions)

    return LedgerTotals(
        monthly_salary=salary,
        total_saved=saved,
        total_expenses=spent,
        extra_income=extra,
        remaining_balance=salary + extra - spent - saved,
    )
