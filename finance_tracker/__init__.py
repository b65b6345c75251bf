"""
Finance Tracker - Source Package

A personal finance ledger for salaried users: expenses, savings, extra
income and a queue of items waiting for the user's confirmation.

DESIGN PRINCIPLES:
1. Money counts only after it has actually moved
2. Every approval gate is consumed exactly once
3. Fail early, fail visibly
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
