"""
Integration tests for LedgerController.

Every test runs against in-memory storage and a fixed clock
(2024-03-01, see conftest).
"""

import json

import pytest
from datetime import date
from decimal import Decimal

from calm_expenses.config import (
    DEFAULT_NAMESPACE_KEY,
    Settings,
    get_settings,
    validate_all_settings,
)
from calm_expenses.errors import (
    DuplicateRecurringError,
    RecordNotFoundError,
    ValidationFailedError,
)
from calm_expenses.models import AuditEventType, TransactionKind
from calm_expenses.orchestrator import (
    LedgerController,
    create_app_components,
    create_storage,
)
from calm_expenses.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    LedgerStore,
    StorageWriteError,
)


def stored_state(storage):
    return json.loads(storage.get_item(DEFAULT_NAMESPACE_KEY))


class TestLoading:

    def test_first_load_seeds_cash(self, ledger, storage):
        assert [a.name for a in ledger.accounts] == ["Cash"]
        assert stored_state(storage)["accounts"][0]["name"] == "Cash"

    def test_reload_restores_state(self, ledger, store, clock, cash):
        ledger.add_transaction("expense", "9.99", cash.id)

        reloaded = LedgerController(store=store, clock=clock)
        reloaded.load()
        assert reloaded.accounts == ledger.accounts
        assert reloaded.transactions == ledger.transactions

    def test_load_is_audited(self, ledger):
        events = ledger.audit_logger.recent_events()
        assert events[0].event_type == AuditEventType.STATE_LOADED
        assert events[0].details["accounts"] == 1

    def test_returned_collections_are_copies(self, ledger):
        ledger.accounts.clear()
        ledger.snapshot().accounts.clear()
        assert len(ledger.accounts) == 1


class TestAccounts:

    def test_create_account(self, ledger, storage):
        account = ledger.create_account("  Bank ", "250.555")

        assert account.name == "Bank"
        assert account.initial_balance == Decimal("250.56")
        assert ledger.get_account(account.id) == account
        assert len(stored_state(storage)["accounts"]) == 2

    def test_invalid_account_changes_nothing(self, ledger, storage):
        before = storage.get_item(DEFAULT_NAMESPACE_KEY)

        with pytest.raises(ValidationFailedError) as exc_info:
            ledger.create_account("   ")

        assert exc_info.value.result.fields_with_issues() == ["name"]
        assert len(ledger.accounts) == 1
        assert storage.get_item(DEFAULT_NAMESPACE_KEY) == before

    def test_update_account(self, ledger, cash):
        updated = ledger.update_account(cash.id, "Wallet", "20")
        assert updated.id == cash.id
        assert ledger.accounts == [updated]
        assert ledger.account_balance(cash.id) == Decimal("20.00")

    def test_huge_initial_balance_is_a_validation_error(self, ledger):
        with pytest.raises(ValidationFailedError) as exc_info:
            ledger.create_account("Big", "123456789012345678901234567")
        assert exc_info.value.result.fields_with_issues() == ["initial_balance"]
        assert len(ledger.accounts) == 1

    def test_update_unknown_account(self, ledger):
        with pytest.raises(RecordNotFoundError):
            ledger.update_account("ghost", "Name")

    def test_delete_account_cascades_exactly(self, ledger, cash):
        """Only records of the deleted account go; the rest is untouched."""
        bank = ledger.create_account("Bank", "0")
        ledger.add_transaction("expense", "1", cash.id)
        ledger.add_transaction("income", "2", cash.id)
        kept_tx = ledger.add_transaction("income", "3", bank.id)
        ledger.create_recurring("Rent", "expense", "800", cash.id)
        kept_rec = ledger.create_recurring("Salary", "income", "2000", bank.id)

        ledger.delete_account(cash.id)

        assert ledger.accounts == [bank]
        assert ledger.transactions == [kept_tx]
        assert ledger.recurrings == [kept_rec]

        event = ledger.audit_logger.recent_events()[0]
        assert event.event_type == AuditEventType.ACCOUNT_DELETED
        assert event.details == {"transactions_removed": 2, "recurrings_removed": 1}

    def test_delete_unknown_account(self, ledger):
        with pytest.raises(RecordNotFoundError):
            ledger.delete_account("ghost")

    def test_account_in_use(self, ledger, cash):
        assert not ledger.account_in_use(cash.id)
        ledger.add_transaction("expense", "1", cash.id)
        assert ledger.account_in_use(cash.id)


class TestTags:

    def test_create_and_update_tag(self, ledger):
        tag = ledger.create_tag("Food", "#84d19a")
        updated = ledger.update_tag(tag.id, "Groceries", "#000000")
        assert ledger.tags == [updated]
        assert updated.name == "Groceries"

    def test_bad_colour_rejected(self, ledger):
        with pytest.raises(ValidationFailedError):
            ledger.create_tag("Food", "green")
        assert ledger.tags == []

    def test_delete_tag_strips_references(self, ledger, cash):
        """The tag id disappears; the transactions and templates stay."""
        food = ledger.create_tag("Food", "#84d19a")
        fun = ledger.create_tag("Fun", "#ff0000")
        tx = ledger.add_transaction("expense", "5", cash.id, tag_ids=[food.id, fun.id])
        template = ledger.create_recurring("Lunch", "expense", "8", cash.id, [food.id])

        ledger.delete_tag(food.id)

        assert ledger.tags == [fun]
        [kept_tx] = ledger.transactions
        assert kept_tx.id == tx.id
        assert kept_tx.tag_ids == [fun.id]
        assert ledger.get_recurring(template.id).tag_ids == []

    def test_resolve_tags(self, ledger):
        food = ledger.create_tag("Food", "#84d19a")
        assert ledger.resolve_tags([food.id, "missing"]) == [food]


class TestTransactions:

    def test_add_transaction_defaults_to_today(self, ledger, cash):
        tx = ledger.add_transaction(TransactionKind.EXPENSE, "12.345", cash.id, note=" coffee ")
        assert tx.date == date(2024, 3, 1)
        assert tx.amount == Decimal("12.35")
        assert tx.note == "coffee"
        assert not tx.is_recurring

    def test_balances_and_totals(self, ledger, cash):
        """Feb 29 counts for the balance but not for March."""
        ledger.add_transaction("income", "1000", cash.id, on="2024-02-29")
        ledger.add_transaction("expense", "20", cash.id, on="2024-03-01")
        ledger.add_transaction("income", "5", cash.id, on="2024-03-31")

        assert ledger.account_balance(cash.id) == Decimal("985.00")
        assert ledger.total_balance() == Decimal("985.00")

        totals = ledger.month_totals()
        assert totals.income == Decimal("5.00")
        assert totals.expense == Decimal("20.00")

    def test_listing_order(self, ledger, cash):
        old = ledger.add_transaction("expense", "1", cash.id, on="2024-01-15")
        first = ledger.add_transaction("expense", "2", cash.id)
        second = ledger.add_transaction("expense", "3", cash.id)
        assert [t.id for t in ledger.transactions] == [second.id, first.id, old.id]
        assert [t.id for t in ledger.recent_transactions(limit=1)] == [second.id]

    @pytest.mark.parametrize("amount", ["0", "-3", "abc", ""])
    def test_invalid_amount_changes_nothing(self, ledger, cash, amount):
        with pytest.raises(ValidationFailedError):
            ledger.add_transaction("expense", amount, cash.id)
        assert ledger.transactions == []

    @pytest.mark.parametrize("amount", ["1e30", "12345678901234567.89"])
    def test_huge_amount_is_a_validation_error(self, ledger, cash, amount):
        with pytest.raises(ValidationFailedError) as exc_info:
            ledger.add_transaction("income", amount, cash.id)
        assert exc_info.value.result.fields_with_issues() == ["amount"]
        assert ledger.transactions == []

    def test_largest_amount_survives_reload(self, ledger, store, clock, cash):
        tx = ledger.add_transaction("income", "9999999999999.99", cash.id)

        reloaded = LedgerController(store=store, clock=clock)
        reloaded.load()

        assert reloaded.transactions == [tx]
        assert reloaded.account_balance(cash.id) == Decimal("9999999999999.99")

    def test_recent_transactions_explicit_zero_limit(self, ledger, cash):
        ledger.add_transaction("expense", "1", cash.id)
        assert ledger.recent_transactions(limit=0) == []
        assert len(ledger.recent_transactions()) == 1

    def test_unknown_account_rejected(self, ledger):
        with pytest.raises(ValidationFailedError) as exc_info:
            ledger.add_transaction("expense", "1", "ghost")
        assert exc_info.value.result.issues[0].issue_type == "unknown_reference"

    def test_validation_failure_is_audited(self, ledger):
        with pytest.raises(ValidationFailedError):
            ledger.add_transaction("expense", "1", "ghost")
        event = ledger.audit_logger.recent_events()[0]
        assert event.event_type == AuditEventType.VALIDATION_FAILED
        assert event.entity_type == "transaction"

    def test_delete_transaction(self, ledger, cash):
        tx = ledger.add_transaction("expense", "1", cash.id)
        ledger.delete_transaction(tx.id)
        assert ledger.transactions == []
        with pytest.raises(RecordNotFoundError):
            ledger.delete_transaction(tx.id)


class TestRecurring:
    """Recurring templates and their once-per-day instantiation."""

    def test_create_recurring_starts_active(self, ledger, cash):
        template = ledger.create_recurring("Rent", "expense", "800", cash.id)
        assert template.active
        assert ledger.recurrings == [template]

    def test_materialize_copies_template(self, ledger, cash):
        food = ledger.create_tag("Food", "#84d19a")
        template = ledger.create_recurring("Lunch", "expense", "8.50", cash.id, [food.id])

        tx = ledger.materialize_today(template.id)

        assert tx.kind is TransactionKind.EXPENSE
        assert tx.amount == Decimal("8.50")
        assert tx.account_id == cash.id
        assert tx.tag_ids == [food.id]
        assert tx.note == "Lunch"
        assert tx.date == date(2024, 3, 1)
        assert tx.recurring_id == template.id
        assert tx.recurring_key == "manual:2024-03-01"
        assert ledger.transactions == [tx]

    def test_same_day_duplicate_rejected(self, ledger, cash):
        template = ledger.create_recurring("Rent", "expense", "800", cash.id)
        ledger.materialize_today(template.id)

        with pytest.raises(DuplicateRecurringError):
            ledger.materialize_today(template.id)

        assert len(ledger.transactions) == 1
        event = ledger.audit_logger.recent_events()[0]
        assert event.event_type == AuditEventType.RECURRING_DUPLICATE_REJECTED

    def test_different_templates_same_day(self, ledger, cash):
        rent = ledger.create_recurring("Rent", "expense", "800", cash.id)
        salary = ledger.create_recurring("Salary", "income", "2000", cash.id)
        ledger.materialize_today(rent.id)
        ledger.materialize_today(salary.id)
        assert len(ledger.transactions) == 2

    def test_next_day_allowed(self, ledger, cash, clock):
        template = ledger.create_recurring("Rent", "expense", "800", cash.id)
        ledger.materialize_today(template.id)

        clock.today = date(2024, 3, 2)
        tx = ledger.materialize_today(template.id)

        assert tx.recurring_key == "manual:2024-03-02"
        assert len(ledger.transactions) == 2

    def test_inactive_template_can_still_be_materialized(self, ledger, cash):
        template = ledger.create_recurring("Rent", "expense", "800", cash.id)
        ledger.set_recurring_active(template.id, False)
        assert ledger.materialize_today(template.id).recurring_id == template.id

    def test_toggle(self, ledger, cash):
        template = ledger.create_recurring("Rent", "expense", "800", cash.id)
        assert ledger.toggle_recurring(template.id).active is False
        assert ledger.toggle_recurring(template.id).active is True

    def test_delete_recurring_keeps_transactions(self, ledger, cash):
        template = ledger.create_recurring("Rent", "expense", "800", cash.id)
        tx = ledger.materialize_today(template.id)

        ledger.delete_recurring(template.id)

        assert ledger.recurrings == []
        assert ledger.transactions == [tx]

    def test_unknown_template(self, ledger):
        with pytest.raises(RecordNotFoundError):
            ledger.materialize_today("ghost")

    def test_invalid_recurring_rejected(self, ledger, cash):
        with pytest.raises(ValidationFailedError):
            ledger.create_recurring("", "expense", "0", cash.id)
        assert ledger.recurrings == []


class TestSaveFailure:

    def test_mutation_survives_failed_write(self, clock):
        class BrokenAfterLoad(InMemoryStorage):
            broken = False

            def set_item(self, key, value):
                if self.broken:
                    raise StorageWriteError("read-only")
                super().set_item(key, value)

        storage = BrokenAfterLoad()
        controller = LedgerController(store=LedgerStore(storage), clock=clock)
        controller.load()
        storage.broken = True

        account = controller.create_account("Bank")

        assert controller.get_account(account.id) == account
        assert controller.save() is False


class TestFactory:

    def test_create_app_components(self, clock):
        storage = InMemoryStorage()
        controller = create_app_components(storage=storage, clock=clock)

        assert controller.today() == date(2024, 3, 1)
        assert [a.name for a in controller.accounts] == ["Cash"]
        assert storage.get_item(DEFAULT_NAMESPACE_KEY) is not None

    def test_empty_injected_storage_is_used(self, monkeypatch, tmp_path, clock):
        """An empty slot is still the slot; the configured file is never touched."""
        ledger_file = tmp_path / "ledger.json"
        monkeypatch.setenv("CALM_EXPENSES_STORAGE_PATH", str(ledger_file))
        storage = InMemoryStorage()

        create_app_components(storage=storage, settings=Settings(), clock=clock)

        assert storage.get_item(DEFAULT_NAMESPACE_KEY) is not None
        assert not ledger_file.exists()

    def test_debug_mode_forces_debug_logging(self, monkeypatch):
        monkeypatch.setenv("DEBUG_MODE", "true")
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        assert Settings().app.effective_log_level == "DEBUG"

        monkeypatch.setenv("DEBUG_MODE", "false")
        assert Settings().app.effective_log_level == "WARNING"

    def test_settings_from_environment(self, monkeypatch, clock):
        monkeypatch.setenv("CALM_EXPENSES_LEDGER_SEED_ACCOUNT_NAME", "Wallet")
        monkeypatch.setenv("CALM_EXPENSES_STORAGE_NAMESPACE_KEY", "test-ledger")
        storage = InMemoryStorage()

        controller = create_app_components(storage=storage, settings=Settings(), clock=clock)

        assert controller.accounts[0].name == "Wallet"
        assert storage.get_item("test-ledger") is not None

    def test_validate_all_settings_reports_bad_values(self, monkeypatch):
        monkeypatch.setenv("CALM_EXPENSES_LEDGER_RECENT_TRANSACTIONS_LIMIT", "0")
        get_settings.cache_clear()
        try:
            status = validate_all_settings()
        finally:
            get_settings.cache_clear()

        assert status["storage"] is True
        assert status["app"] is True
        assert status["ledger"] is False
        assert "ledger_error" in status

    def test_create_storage_backends(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CALM_EXPENSES_STORAGE_BACKEND", "memory")
        assert isinstance(create_storage(Settings()), InMemoryStorage)

        monkeypatch.setenv("CALM_EXPENSES_STORAGE_BACKEND", "file")
        monkeypatch.setenv("CALM_EXPENSES_STORAGE_PATH", str(tmp_path / "ledger.json"))
        storage = create_storage(Settings())
        assert isinstance(storage, JsonFileStorage)
        assert storage.path == tmp_path / "ledger.json"
