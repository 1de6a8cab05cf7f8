"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Complete traceability of what changed
2. Debugging capability when stored data had to be discarded
3. User can see history of their actions

The audit logger:
- Is synchronous, like every other ledger operation
- Never raises into the caller (a logging problem must not abort a mutation)
- Keeps a bounded in-memory history for display
"""

import logging
from collections import deque
from typing import Optional

import structlog

from calm_expenses.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditSeverity,
)


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at `level`."""
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An in-memory history (for the settings page)
    """

    def __init__(self, history_size: int = 200):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
                          0 disables the history.
        """
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("calm_expenses.audit")

    def log(self, event: AuditEvent) -> None:
        """Log an audit event locally and remember it."""
        log_dict = event.to_log_dict()

        if event.severity is AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity is AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity is AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._history.maxlen:
            self._history.append(event)

    def recent_events(self, limit: Optional[int] = None) -> list[AuditEvent]:
        """Most recent events, newest first."""
        events = list(reversed(self._history))
        return events if limit is None else events[:limit]

    def clear_history(self) -> None:
        self._history.clear()

    def log_created(
        self,
        entity_type: str,
        entity_id: str,
        label: str,
        details: Optional[dict] = None,
    ) -> None:
        self.log(AuditEventBuilder.record_created(entity_type, entity_id, label, details))

    def log_updated(
        self,
        entity_type: str,
        entity_id: str,
        label: str,
        details: Optional[dict] = None,
    ) -> None:
        self.log(AuditEventBuilder.record_updated(entity_type, entity_id, label, details))

    def log_deleted(
        self,
        entity_type: str,
        entity_id: str,
        details: Optional[dict] = None,
    ) -> None:
        self.log(AuditEventBuilder.record_deleted(entity_type, entity_id, details))

    def log_recurring_materialized(
        self,
        template_id: str,
        transaction_id: str,
        recurring_key: str,
    ) -> None:
        self.log(AuditEventBuilder.recurring_materialized(
            template_id=template_id,
            transaction_id=transaction_id,
            recurring_key=recurring_key,
        ))

    def log_recurring_duplicate(self, template_id: str, recurring_key: str) -> None:
        self.log(AuditEventBuilder.recurring_duplicate_rejected(template_id, recurring_key))

    def log_validation_failed(self, entity_type: str, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.validation_failed(entity_type, issues))

    def log_state_loaded(self, counts: dict[str, int]) -> None:
        self.log(AuditEventBuilder.state_loaded(counts))

    def log_load_recovered(self, problems: list[str]) -> None:
        self.log(AuditEventBuilder.load_recovered(problems))

    def log_seed_created(self, account_id: str, account_name: str) -> None:
        self.log(AuditEventBuilder.seed_created(account_id, account_name))

    def log_save_failed(self, error_message: str) -> None:
        self.log(AuditEventBuilder.save_failed(error_message))
