"""Recurring template instantiation package."""

from calm_expenses.recurring.materializer import (
    MANUAL_KEY_PREFIX,
    find_materialized,
    manual_recurring_key,
    materialize,
)

__all__ = [
    "MANUAL_KEY_PREFIX",
    "find_materialized",
    "manual_recurring_key",
    "materialize",
]
