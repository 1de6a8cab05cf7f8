"""Derived ledger values package."""

from calm_expenses.queries.calculations import (
    account_balance,
    account_in_use,
    month_range,
    month_totals,
    recent_transactions,
    resolve_tags,
    sort_transactions,
    total_balance,
)

__all__ = [
    "account_balance",
    "account_in_use",
    "month_range",
    "month_totals",
    "recent_transactions",
    "resolve_tags",
    "sort_transactions",
    "total_balance",
]
