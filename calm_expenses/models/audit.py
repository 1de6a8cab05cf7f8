"""
Audit Models for Calm Expenses

Every ledger mutation and every recovered fault produces an audit event.
This provides:
1. A history the user can look at ("what did I just delete?")
2. Debugging information when persisted data had to be discarded
3. A single place where silent fallbacks become visible

DESIGN DECISION: Audit events are append-only and never block a mutation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"

    # Tags
    TAG_CREATED = "tag_created"
    TAG_UPDATED = "tag_updated"
    TAG_DELETED = "tag_deleted"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_DELETED = "transaction_deleted"

    # Recurring templates
    RECURRING_CREATED = "recurring_created"
    RECURRING_TOGGLED = "recurring_toggled"
    RECURRING_DELETED = "recurring_deleted"
    RECURRING_MATERIALIZED = "recurring_materialized"
    RECURRING_DUPLICATE_REJECTED = "recurring_duplicate_rejected"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Persistence
    STATE_LOADED = "state_loaded"
    LOAD_RECOVERED = "load_recovered"
    SEED_CREATED = "seed_created"
    SAVE_FAILED = "save_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of the audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of record (e.g., 'account', 'tag', 'transaction')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the record this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("account", account.id, account.name)
        event = AuditEventBuilder.recurring_materialized(template_id, tx_id, key)
    """

    _CREATED = {
        "account": AuditEventType.ACCOUNT_CREATED,
        "tag": AuditEventType.TAG_CREATED,
        "transaction": AuditEventType.TRANSACTION_ADDED,
        "recurring": AuditEventType.RECURRING_CREATED,
    }
    _UPDATED = {
        "account": AuditEventType.ACCOUNT_UPDATED,
        "tag": AuditEventType.TAG_UPDATED,
        "recurring": AuditEventType.RECURRING_TOGGLED,
    }
    _DELETED = {
        "account": AuditEventType.ACCOUNT_DELETED,
        "tag": AuditEventType.TAG_DELETED,
        "transaction": AuditEventType.TRANSACTION_DELETED,
        "recurring": AuditEventType.RECURRING_DELETED,
    }

    @staticmethod
    def record_created(
        entity_type: str,
        entity_id: str,
        label: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._CREATED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} created: {label}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def record_updated(
        entity_type: str,
        entity_id: str,
        label: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._UPDATED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} updated: {label}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        entity_type: str,
        entity_id: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventBuilder._DELETED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} deleted",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def recurring_materialized(
        template_id: str,
        transaction_id: str,
        recurring_key: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_MATERIALIZED,
            entity_type="recurring",
            entity_id=template_id,
            description=f"Recurring template added for {recurring_key}",
            details={
                "transaction_id": transaction_id,
                "recurring_key": recurring_key,
            },
            is_user_action=True,
        )

    @staticmethod
    def recurring_duplicate_rejected(
        template_id: str,
        recurring_key: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_DUPLICATE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="recurring",
            entity_id=template_id,
            description="Recurring template was already added today",
            details={
                "recurring_key": recurring_key,
            },
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            description=f"{entity_type.capitalize()} validation failed with {len(issues)} issues",
            details={
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def state_loaded(counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_LOADED,
            description="Ledger loaded from storage",
            details=counts,
        )

    @staticmethod
    def load_recovered(problems: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAD_RECOVERED,
            severity=AuditSeverity.WARNING,
            description=f"Stored ledger data was partly or fully discarded ({len(problems)} problems)",
            details={
                "problems": problems,
            },
        )

    @staticmethod
    def seed_created(account_id: str, account_name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEED_CREATED,
            entity_type="account",
            entity_id=account_id,
            description=f"Default account created: {account_name}",
        )

    @staticmethod
    def save_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            description="Could not persist ledger state",
            error_message=error_message,
        )
