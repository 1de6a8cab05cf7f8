"""
Calm Expenses - Source Package

A small personal finance ledger: accounts, tags, transactions and
recurring templates, kept in one local key-value slot.

DESIGN PRINCIPLES:
1. Balances are derived, never stored
2. Validate first, then change everything at once
3. Never crash on stored data; report what was discarded
4. Every mutation is audited
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Calm Expenses Team"
