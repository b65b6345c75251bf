"""
Ledger Error Taxonomy

Every failure the mutation flow can raise to a UI action.
Nothing here is retried automatically.
"""

from typing import Optional
from uuid import UUID


class LedgerError(Exception):
    """Base exception for ledger operations."""

    #: Short code used in audit events and notifications.
    code = "ledger_error"


class InvalidInput(LedgerError):
    """Malformed or missing field; rejected before any write."""
    code = "invalid_input"


class InvalidAmount(InvalidInput):
    """Amount is zero or negative; rejected before any write."""
    code = "invalid_amount"


class CounterpartyNotFound(LedgerError):
    """Split target username does not resolve to a user."""
    code = "counterparty_not_found"

    def __init__(self, username: str):
        super().__init__(f"No user found with username '{username}'")
        self.username = username


class ValidationNotFound(LedgerError):
    """Validation item does not exist or was already resolved."""
    code = "validation_not_found"

    def __init__(self, validation_id: UUID):
        super().__init__(f"Validation item not found: {validation_id}")
        self.validation_id = validation_id


class PersistenceFailure(LedgerError):
    """
    The persistence backend reported an error.

    The in-memory ledger was not changed for the failed write.
    """
    code = "persistence_failure"

    def __init__(self, operation: str, cause: Optional[Exception] = None):
        message = f"Failed to {operation}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.operation = operation
        self.cause = cause


class PartialSplitFailure(LedgerError):
    """
    The submitter's half of a split posted but the counterparty's
    approval gate could not be written.

    The expense is left with a pending split status and no gate.
    It needs manual reconciliation.
    """
    code = "partial_split_failure"

    def __init__(
        self,
        expense_id: UUID,
        counterparty_id: UUID,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            f"Split expense {expense_id} was saved but the approval request "
            f"for user {counterparty_id} could not be created"
        )
        self.expense_id = expense_id
        self.counterparty_id = counterparty_id
        self.cause = cause
