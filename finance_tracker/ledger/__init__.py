"""
Ledger Package

The write-through store holding the signed-in user's records.
"""

from finance_tracker.ledger.store import LedgerStore

__all__ = ["LedgerStore"]
