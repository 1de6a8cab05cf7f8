"""
Main Orchestrator for Calm Expenses

This module ties the components together. LedgerController is the single
owner of the ledger state and the only way the presentation layer can
change it.

Every mutation follows the same path:
1. Validate the raw input (abort on any issue, nothing changes)
2. Build the new collections
3. Swap them into the state in one step
4. Persist the whole state
5. Audit

DESIGN DECISION: The presentation layer only ever receives copies of the
collections. Records are frozen, so a copy of the list is enough.
"""

from collections.abc import Callable, Iterable
from datetime import date
from decimal import Decimal
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from calm_expenses.audit import AuditLogger, configure_logging
from calm_expenses.config import Settings, get_settings
from calm_expenses.errors import (
    DuplicateRecurringError,
    RecordNotFoundError,
    ValidationFailedError,
)
from calm_expenses.models.ledger import (
    Account,
    LedgerState,
    MonthTotals,
    RecurringTemplate,
    Tag,
    Transaction,
    ValidationIssue,
    ValidationResult,
)
from calm_expenses.models.money import MoneyInput
from calm_expenses.queries import calculations
from calm_expenses.recurring import materialize
from calm_expenses.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    KeyValueStorageInterface,
    LedgerStore,
    LoadResult,
)
from calm_expenses.validation import LedgerValidator

RecordT = TypeVar("RecordT", bound=BaseModel)


def _find(records: Iterable[RecordT], record_id: str) -> Optional[RecordT]:
    for record in records:
        if record.id == record_id:
            return record
    return None


def _replace(records: list[RecordT], updated: RecordT) -> list[RecordT]:
    return [updated if r.id == updated.id else r for r in records]


class LedgerController:
    """
    Owns the ledger state and exposes every operation on it.

    Operations offered to the presentation layer:
    - load / save state
    - balances and month totals
    - validated create / update / delete on the four collections
    - materialize a recurring template for today
    - read-only copies of the collections
    """

    def __init__(
        self,
        store: LedgerStore,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], date]] = None,
        seed_account_name: str = "Cash",
        recent_limit: int = 50,
    ):
        self._store = store
        self._validator = validator if validator is not None else LedgerValidator()
        self._audit_logger = audit_logger if audit_logger is not None else AuditLogger()
        self._clock = clock if clock is not None else date.today
        self._seed_account_name = seed_account_name
        self._recent_limit = recent_limit
        self._state = LedgerState()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def load(self) -> LoadResult:
        """
        Replace the in-memory ledger with the stored one.

        Seeds a default account on first run. Never raises: corrupt data
        is reported in the returned LoadResult instead.
        """
        result = self._store.load_or_seed(self._seed_account_name)
        state = result.state
        state.transactions = calculations.sort_transactions(state.transactions)
        self._state = state

        self._audit_logger.log_state_loaded({
            "accounts": len(state.accounts),
            "tags": len(state.tags),
            "transactions": len(state.transactions),
            "recurrings": len(state.recurrings),
        })
        return result

    def save(self) -> bool:
        """Persist the current state. Returns False if the write failed."""
        return self._store.save(self._state)

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def snapshot(self) -> LedgerState:
        """A copy of the whole ledger for rendering."""
        return self._state.copy_collections()

    @property
    def accounts(self) -> list[Account]:
        return list(self._state.accounts)

    @property
    def tags(self) -> list[Tag]:
        return list(self._state.tags)

    @property
    def transactions(self) -> list[Transaction]:
        """All transactions in display order."""
        return list(self._state.transactions)

    @property
    def recurrings(self) -> list[RecurringTemplate]:
        return list(self._state.recurrings)

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    def today(self) -> date:
        return self._clock()

    def get_account(self, account_id: str) -> Optional[Account]:
        return _find(self._state.accounts, account_id)

    def get_tag(self, tag_id: str) -> Optional[Tag]:
        return _find(self._state.tags, tag_id)

    def get_recurring(self, template_id: str) -> Optional[RecurringTemplate]:
        return _find(self._state.recurrings, template_id)

    def recent_transactions(self, limit: Optional[int] = None) -> list[Transaction]:
        if limit is None:
            limit = self._recent_limit
        return calculations.recent_transactions(self._state, limit)

    def resolve_tags(self, tag_ids: Iterable[str]) -> list[Tag]:
        return calculations.resolve_tags(self._state, tag_ids)

    def account_in_use(self, account_id: str) -> bool:
        return calculations.account_in_use(self._state, account_id)

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    def account_balance(self, account_id: str) -> Decimal:
        return calculations.account_balance(self._state, account_id)

    def total_balance(self) -> Decimal:
        return calculations.total_balance(self._state)

    def month_totals(self, reference: Optional[date] = None) -> MonthTotals:
        """Totals for the month containing `reference` (default: today)."""
        return calculations.month_totals(self._state, reference or self._clock())

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def create_account(self, name: Optional[str], initial_balance: MoneyInput = None) -> Account:
        cleaned = self._require(self._validator.validate_account(name, initial_balance))
        account = self._build(Account, "account", **cleaned)

        self._state.accounts = [*self._state.accounts, account]
        self._commit()
        self._audit_logger.log_created("account", account.id, account.name, {
            "initial_balance": str(account.initial_balance),
        })
        return account

    def update_account(
        self,
        account_id: str,
        name: Optional[str],
        initial_balance: MoneyInput = None,
    ) -> Account:
        """Rename an account and/or change its opening balance."""
        self._require_record(self._state.accounts, "account", account_id)
        cleaned = self._require(self._validator.validate_account(name, initial_balance))
        account = self._build(Account, "account", id=account_id, **cleaned)

        self._state.accounts = _replace(self._state.accounts, account)
        self._commit()
        self._audit_logger.log_updated("account", account.id, account.name, {
            "initial_balance": str(account.initial_balance),
        })
        return account

    def delete_account(self, account_id: str) -> None:
        """
        Delete an account together with every transaction and recurring
        template that references it.
        """
        self._require_record(self._state.accounts, "account", account_id)

        transactions = [tx for tx in self._state.transactions if tx.account_id != account_id]
        recurrings = [r for r in self._state.recurrings if r.account_id != account_id]
        removed_tx = len(self._state.transactions) - len(transactions)
        removed_rec = len(self._state.recurrings) - len(recurrings)

        self._state.transactions = transactions
        self._state.recurrings = recurrings
        self._state.accounts = [a for a in self._state.accounts if a.id != account_id]
        self._commit()
        self._audit_logger.log_deleted("account", account_id, {
            "transactions_removed": removed_tx,
            "recurrings_removed": removed_rec,
        })

    # -------------------------------------------------------------------------
    # Tags
    # -------------------------------------------------------------------------

    def create_tag(self, name: Optional[str], color: Optional[str]) -> Tag:
        cleaned = self._require(self._validator.validate_tag(name, color))
        tag = self._build(Tag, "tag", **cleaned)

        self._state.tags = [*self._state.tags, tag]
        self._commit()
        self._audit_logger.log_created("tag", tag.id, tag.name, {"color": tag.color})
        return tag

    def update_tag(self, tag_id: str, name: Optional[str], color: Optional[str]) -> Tag:
        self._require_record(self._state.tags, "tag", tag_id)
        cleaned = self._require(self._validator.validate_tag(name, color))
        tag = self._build(Tag, "tag", id=tag_id, **cleaned)

        self._state.tags = _replace(self._state.tags, tag)
        self._commit()
        self._audit_logger.log_updated("tag", tag.id, tag.name, {"color": tag.color})
        return tag

    def delete_tag(self, tag_id: str) -> None:
        """
        Delete a tag and strip its id from every transaction and recurring
        template. The records themselves stay.
        """
        self._require_record(self._state.tags, "tag", tag_id)

        def strip(record):
            if tag_id not in record.tag_ids:
                return record
            return record.model_copy(
                update={"tag_ids": [t for t in record.tag_ids if t != tag_id]}
            )

        transactions = [strip(tx) for tx in self._state.transactions]
        recurrings = [strip(r) for r in self._state.recurrings]

        self._state.transactions = transactions
        self._state.recurrings = recurrings
        self._state.tags = [t for t in self._state.tags if t.id != tag_id]
        self._commit()
        self._audit_logger.log_deleted("tag", tag_id)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def add_transaction(
        self,
        kind: Any,
        amount: MoneyInput,
        account_id: Optional[str],
        on: Any = None,
        tag_ids: Optional[Iterable[str]] = None,
        note: Optional[str] = None,
    ) -> Transaction:
        """Record a one-off transaction. A blank date means today."""
        result = self._validator.validate_transaction(
            kind=kind,
            amount=amount,
            account_id=account_id,
            known_account_ids={a.id for a in self._state.accounts},
            today=self._clock(),
            on=on,
            tag_ids=tag_ids,
            note=note,
        )
        cleaned = self._require(result)
        tx = self._build(Transaction, "transaction", **cleaned)

        self._append_transaction(tx)
        self._audit_logger.log_created("transaction", tx.id, f"{tx.kind.value} {tx.amount}", {
            "account_id": tx.account_id,
            "date": tx.date.isoformat(),
        })
        return tx

    def delete_transaction(self, transaction_id: str) -> None:
        self._require_record(self._state.transactions, "transaction", transaction_id)
        self._state.transactions = [
            tx for tx in self._state.transactions if tx.id != transaction_id
        ]
        self._commit()
        self._audit_logger.log_deleted("transaction", transaction_id)

    # -------------------------------------------------------------------------
    # Recurring templates
    # -------------------------------------------------------------------------

    def create_recurring(
        self,
        name: Optional[str],
        kind: Any,
        amount: MoneyInput,
        account_id: Optional[str],
        tag_ids: Optional[Iterable[str]] = None,
    ) -> RecurringTemplate:
        """Create a recurring template. New templates start active."""
        result = self._validator.validate_recurring(
            name=name,
            kind=kind,
            amount=amount,
            account_id=account_id,
            known_account_ids={a.id for a in self._state.accounts},
            tag_ids=tag_ids,
        )
        cleaned = self._require(result)
        template = self._build(RecurringTemplate, "recurring", active=True, **cleaned)

        self._state.recurrings = [*self._state.recurrings, template]
        self._commit()
        self._audit_logger.log_created("recurring", template.id, template.name, {
            "kind": template.kind.value,
            "amount": str(template.amount),
        })
        return template

    def set_recurring_active(self, template_id: str, active: bool) -> RecurringTemplate:
        template = self._require_record(self._state.recurrings, "recurring", template_id)
        updated = template.model_copy(update={"active": bool(active)})

        self._state.recurrings = _replace(self._state.recurrings, updated)
        self._commit()
        self._audit_logger.log_updated("recurring", updated.id, updated.name, {
            "active": updated.active,
        })
        return updated

    def toggle_recurring(self, template_id: str) -> RecurringTemplate:
        template = self._require_record(self._state.recurrings, "recurring", template_id)
        return self.set_recurring_active(template_id, not template.active)

    def delete_recurring(self, template_id: str) -> None:
        """Delete a template. Transactions already generated from it stay."""
        self._require_record(self._state.recurrings, "recurring", template_id)
        self._state.recurrings = [r for r in self._state.recurrings if r.id != template_id]
        self._commit()
        self._audit_logger.log_deleted("recurring", template_id)

    def materialize_today(self, template_id: str) -> Transaction:
        """
        Turn a recurring template into a transaction dated today.

        Raises:
            RecordNotFoundError: Unknown template
            DuplicateRecurringError: Already added today
        """
        template = self._require_record(self._state.recurrings, "recurring", template_id)

        try:
            tx = materialize(template, self._clock(), self._state.transactions)
        except DuplicateRecurringError as e:
            self._audit_logger.log_recurring_duplicate(template_id, e.recurring_key)
            raise

        self._append_transaction(tx)
        self._audit_logger.log_recurring_materialized(template.id, tx.id, tx.recurring_key)
        return tx

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _append_transaction(self, tx: Transaction) -> None:
        self._state.transactions = calculations.sort_transactions(
            [*self._state.transactions, tx]
        )
        self._commit()

    def _commit(self) -> bool:
        return self._store.save(self._state)

    def _require(self, result: ValidationResult) -> dict[str, Any]:
        if not result.is_valid:
            self._audit_logger.log_validation_failed(
                result.entity_type,
                [issue.model_dump() for issue in result.issues],
            )
        return self._validator.require_valid(result)

    def _build(self, model: type[RecordT], entity_type: str, **fields: Any) -> RecordT:
        """Construct a record, reporting model-level rule breaks as validation issues."""
        try:
            return model(**fields)
        except ValidationError as e:
            issues = [
                ValidationIssue(
                    field=".".join(str(part) for part in error["loc"]) or entity_type,
                    issue_type=error["type"],
                    message=error["msg"],
                )
                for error in e.errors()
            ]
            result = ValidationResult(entity_type=entity_type, issues=issues)
            self._audit_logger.log_validation_failed(
                entity_type, [issue.model_dump() for issue in issues]
            )
            raise ValidationFailedError(result) from e

    @staticmethod
    def _require_record(records: Iterable[RecordT], entity_type: str, record_id: str) -> RecordT:
        record = _find(records, record_id)
        if record is None:
            raise RecordNotFoundError(entity_type, record_id)
        return record


def create_storage(settings: Optional[Settings] = None) -> KeyValueStorageInterface:
    """Build the key-value slot configured in settings."""
    storage_settings = (settings if settings is not None else get_settings()).storage
    if storage_settings.backend == "memory":
        return InMemoryStorage()
    return JsonFileStorage(storage_settings.path)


def create_app_components(
    storage: Optional[KeyValueStorageInterface] = None,
    settings: Optional[Settings] = None,
    clock: Optional[Callable[[], date]] = None,
) -> LedgerController:
    """
    Factory function to create a loaded LedgerController.

    Args:
        storage: Key-value slot to use. Defaults to the configured backend.
        settings: Settings to read. Defaults to the cached settings.
        clock: Source of "today". Defaults to the local calendar date.

    Returns:
        A controller whose state has been loaded (and seeded if empty)
    """
    settings = settings if settings is not None else get_settings()
    app_settings = settings.app
    ledger_settings = settings.ledger

    configure_logging(app_settings.effective_log_level)

    audit_logger = AuditLogger(history_size=app_settings.audit_history_size)
    store = LedgerStore(
        storage if storage is not None else create_storage(settings),
        namespace_key=settings.storage.namespace_key,
        audit_logger=audit_logger,
    )
    controller = LedgerController(
        store=store,
        audit_logger=audit_logger,
        clock=clock,
        seed_account_name=ledger_settings.seed_account_name,
        recent_limit=ledger_settings.recent_transactions_limit,
    )
    controller.load()
    return controller
