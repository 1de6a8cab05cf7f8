"""Audit logging package."""

from calm_expenses.audit.logger import AuditLogger, configure_logging

__all__ = ["AuditLogger", "configure_logging"]
