"""Input validation package."""

from calm_expenses.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
