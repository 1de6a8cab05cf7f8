"""
Data Models Package

This package contains all Pydantic models used in Calm Expenses.
All data flowing through the ledger must conform to these schemas.
"""

from calm_expenses.models.ledger import (
    Account,
    LedgerState,
    MonthTotals,
    RecurringTemplate,
    Tag,
    Transaction,
    TransactionKind,
    ValidationIssue,
    ValidationResult,
    generate_id,
)
from calm_expenses.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from calm_expenses.models.money import parse_money, round_money

__all__ = [
    # Ledger models
    "Account",
    "LedgerState",
    "MonthTotals",
    "RecurringTemplate",
    "Tag",
    "Transaction",
    "TransactionKind",
    "ValidationIssue",
    "ValidationResult",
    "generate_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Money helpers
    "parse_money",
    "round_money",
]
