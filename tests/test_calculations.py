"""Tests for derived balances, month totals and ordering."""

from datetime import date, datetime, timezone
from decimal import Decimal

from calm_expenses.models import (
    Account,
    LedgerState,
    RecurringTemplate,
    Tag,
    Transaction,
    TransactionKind,
)
from calm_expenses.queries import (
    account_balance,
    account_in_use,
    month_range,
    month_totals,
    recent_transactions,
    resolve_tags,
    sort_transactions,
    total_balance,
)


def tx(kind, amount, on, account_id="a1", created_hour=12, **extra):
    return Transaction(
        kind=kind,
        amount=amount,
        date=on,
        account_id=account_id,
        created_at=datetime(2024, 1, 1, created_hour, tzinfo=timezone.utc),
        **extra,
    )


INCOME = TransactionKind.INCOME
EXPENSE = TransactionKind.EXPENSE


class TestBalances:

    def test_account_balance(self):
        state = LedgerState(
            accounts=[Account(id="a1", name="Cash", initial_balance="100")],
            transactions=[
                tx(INCOME, "50", date(2024, 3, 1)),
                tx(EXPENSE, "30.25", date(2024, 3, 2)),
                tx(EXPENSE, "999", date(2024, 3, 2), account_id="a2"),
            ],
        )
        assert account_balance(state, "a1") == Decimal("119.75")

    def test_unknown_account_starts_at_zero(self):
        state = LedgerState(transactions=[tx(EXPENSE, "5", date(2024, 3, 1), account_id="gone")])
        assert account_balance(state, "gone") == Decimal("-5.00")

    def test_total_balance_sums_accounts(self):
        state = LedgerState(
            accounts=[
                Account(id="a1", name="Cash", initial_balance="10"),
                Account(id="a2", name="Card", initial_balance="-3.5"),
            ],
            transactions=[tx(INCOME, "1", date(2024, 3, 1), account_id="a2")],
        )
        assert total_balance(state) == Decimal("7.50")

    def test_empty_ledger(self):
        assert total_balance(LedgerState()) == Decimal("0.00")


class TestMonthTotals:

    def test_half_open_month(self):
        """Feb 29 is outside March; Mar 1 and Mar 31 are inside."""
        state = LedgerState(transactions=[
            tx(INCOME, "1000", date(2024, 2, 29)),
            tx(EXPENSE, "20", date(2024, 3, 1)),
            tx(INCOME, "5", date(2024, 3, 31)),
            tx(EXPENSE, "7", date(2024, 4, 1)),
        ])
        totals = month_totals(state, date(2024, 3, 15))
        assert totals.start == date(2024, 3, 1)
        assert totals.end == date(2024, 4, 1)
        assert totals.income == Decimal("5.00")
        assert totals.expense == Decimal("20.00")
        assert totals.net == Decimal("-15.00")

    def test_december_rolls_into_next_year(self):
        assert month_range(date(2024, 12, 31)) == (date(2024, 12, 1), date(2025, 1, 1))

    def test_all_accounts_counted(self):
        state = LedgerState(transactions=[
            tx(EXPENSE, "1", date(2024, 3, 3), account_id="a1"),
            tx(EXPENSE, "2", date(2024, 3, 3), account_id="a2"),
        ])
        assert month_totals(state, date(2024, 3, 1)).expense == Decimal("3.00")


class TestOrdering:

    def test_newest_date_first_then_newest_created(self):
        older_day = tx(EXPENSE, "1", date(2024, 2, 1), created_hour=23)
        same_day_early = tx(EXPENSE, "2", date(2024, 3, 1), created_hour=8)
        same_day_late = tx(EXPENSE, "3", date(2024, 3, 1), created_hour=9)

        ordered = sort_transactions([older_day, same_day_early, same_day_late])
        assert ordered == [same_day_late, same_day_early, older_day]

    def test_backdated_entry_sorts_by_date(self):
        """A transaction entered later but dated earlier sorts below."""
        march = tx(EXPENSE, "1", date(2024, 3, 1), created_hour=1)
        backdated = tx(EXPENSE, "2", date(2024, 2, 1), created_hour=20)
        assert sort_transactions([backdated, march]) == [march, backdated]

    def test_recent_transactions_limit(self):
        txs = [tx(EXPENSE, "1", date(2024, 3, day)) for day in range(1, 6)]
        recent = recent_transactions(LedgerState(transactions=txs), limit=2)
        assert [t.date.day for t in recent] == [5, 4]


class TestLookups:

    def test_account_in_use(self):
        state = LedgerState(
            transactions=[tx(EXPENSE, "1", date(2024, 3, 1), account_id="a1")],
            recurrings=[RecurringTemplate(name="Rent", kind=EXPENSE, amount="1", account_id="a2")],
        )
        assert account_in_use(state, "a1")
        assert account_in_use(state, "a2")
        assert not account_in_use(state, "a3")

    def test_resolve_tags_skips_missing(self):
        food = Tag(id="t1", name="Food", color="#111111")
        fun = Tag(id="t2", name="Fun", color="#222222")
        state = LedgerState(tags=[food, fun])
        assert resolve_tags(state, ["t2", "gone", "t1"]) == [fun, food]
