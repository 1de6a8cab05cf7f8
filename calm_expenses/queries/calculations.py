"""
Ledger Calculations

DESIGN DECISION: Balances and totals are DERIVED on every call.
Nothing here is cached or persisted; each function is a linear scan over
the current collections, so the numbers can never drift from the records.

All results are rounded to cents.
"""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Optional

from calm_expenses.models.ledger import (
    LedgerState,
    MonthTotals,
    Tag,
    Transaction,
    TransactionKind,
)
from calm_expenses.models.money import ZERO, round_money, sum_money


def account_balance(state: LedgerState, account_id: str) -> Decimal:
    """
    Initial balance plus signed transaction amounts for one account.

    An unknown account counts as starting from zero.
    """
    initial = ZERO
    for account in state.accounts:
        if account.id == account_id:
            initial = account.initial_balance
            break

    delta = ZERO
    for tx in state.transactions:
        if tx.account_id == account_id:
            delta += tx.signed_amount

    return round_money(initial + delta)


def total_balance(state: LedgerState) -> Decimal:
    """Sum of the balances of every account."""
    return sum_money(account_balance(state, account.id) for account in state.accounts)


def month_range(reference: date) -> tuple[date, date]:
    """Half-open interval [first of month, first of next month)."""
    start = reference.replace(day=1)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def month_totals(state: LedgerState, reference: date) -> MonthTotals:
    """Income and expense totals for the month containing `reference`."""
    start, end = month_range(reference)

    income = ZERO
    expense = ZERO
    for tx in state.transactions:
        if start <= tx.date < end:
            if tx.kind is TransactionKind.INCOME:
                income += tx.amount
            else:
                expense += tx.amount

    return MonthTotals(
        start=start,
        end=end,
        income=round_money(income),
        expense=round_money(expense),
    )


def sort_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Newest date first; same-day entries newest-created first."""
    return sorted(transactions, key=Transaction.sort_key, reverse=True)


def recent_transactions(state: LedgerState, limit: Optional[int] = None) -> list[Transaction]:
    """The first `limit` transactions in display order."""
    ordered = sort_transactions(state.transactions)
    return ordered if limit is None else ordered[:limit]


def account_in_use(state: LedgerState, account_id: str) -> bool:
    """Does deleting this account cascade into other records?"""
    return (
        any(tx.account_id == account_id for tx in state.transactions)
        or any(rec.account_id == account_id for rec in state.recurrings)
    )


def resolve_tags(state: LedgerState, tag_ids: Iterable[str]) -> list[Tag]:
    """Tags for the given ids, in id order, skipping ids that no longer exist."""
    by_id = {tag.id: tag for tag in state.tags}
    return [by_id[tag_id] for tag_id in tag_ids if tag_id in by_id]
