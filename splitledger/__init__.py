"""
Split Ledger - Source Package

A multi-party shared-expense ledger engine: splits expenses between
participants, folds expenses and payments into per-currency balances, and
proposes the payments that settle a group.

DESIGN PRINCIPLES:
1. Money is integer minor units, never floats
2. Splits always sum exactly to the total
3. Balances are recomputed from events, never stored
4. Currencies are never mixed implicitly
5. Every write is validated and audited
"""

__version__ = "1.0.0"
__author__ = "Split Ledger Team"
