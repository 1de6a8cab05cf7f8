"""
Ledger exceptions.

Every failure the presentation layer is expected to handle derives from
LedgerError. Storage backend failures live in
calm_expenses.services.storage and never reach the presentation layer.
"""

from calm_expenses.models.ledger import ValidationResult


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class ValidationFailedError(LedgerError):
    """User input broke a validation rule. Nothing was changed."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(issue.message for issue in result.issues)
        super().__init__(f"Invalid {result.entity_type}: {messages}")


class DuplicateRecurringError(LedgerError):
    """The recurring template was already added for this calendar day."""

    def __init__(self, template_id: str, recurring_key: str):
        self.template_id = template_id
        self.recurring_key = recurring_key
        super().__init__(
            f"Recurring template {template_id} was already added ({recurring_key})"
        )


class RecordNotFoundError(LedgerError):
    """An update or delete referenced an id that does not exist."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")
