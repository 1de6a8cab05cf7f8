"""
Recurring Template Instantiation

Recurring templates are never scheduled. The user presses "add today"
and the template is copied into a concrete transaction dated today.

Duplicate protection: each generated transaction carries the template id
and a day key ("manual:YYYY-MM-DD"). A second instantiation of the same
template with the same key is refused. The check needs BOTH to match, so
two different templates can each be added once on the same day.
"""

from collections.abc import Iterable
from datetime import date
from typing import Optional

from calm_expenses.errors import DuplicateRecurringError
from calm_expenses.models.ledger import RecurringTemplate, Transaction

MANUAL_KEY_PREFIX = "manual:"


def manual_recurring_key(on: date) -> str:
    return f"{MANUAL_KEY_PREFIX}{on.isoformat()}"


def find_materialized(
    transactions: Iterable[Transaction],
    template_id: str,
    recurring_key: str,
) -> Optional[Transaction]:
    """The transaction already generated for this template and key, if any."""
    for tx in transactions:
        if tx.recurring_id == template_id and tx.recurring_key == recurring_key:
            return tx
    return None


def materialize(
    template: RecurringTemplate,
    on: date,
    transactions: Iterable[Transaction],
) -> Transaction:
    """
    Build today's transaction for a template.

    Does not touch the collection; the caller appends and persists.

    Raises:
        DuplicateRecurringError: The template was already added on `on`
    """
    key = manual_recurring_key(on)
    if find_materialized(transactions, template.id, key) is not None:
        raise DuplicateRecurringError(template.id, key)

    return Transaction(
        kind=template.kind,
        amount=template.amount,
        date=on,
        account_id=template.account_id,
        tag_ids=list(template.tag_ids),
        note=template.name,
        recurring_id=template.id,
        recurring_key=key,
    )
