"""
Ledger Persistence Store

Serializes the four ledger collections into one key-value slot and reads
them back.

DESIGN DECISION: Loading never fails.
Absent, unreadable or malformed data falls back to empty collections so
the app always starts. Unlike a silent fallback, every discarded piece is
reported in LoadResult.problems and logged as a warning.

Saving never raises either. A failed write is logged and reported as
False; the in-memory ledger stays as it is.
"""

import json
from typing import Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from calm_expenses.audit import AuditLogger
from calm_expenses.config import DEFAULT_NAMESPACE_KEY
from calm_expenses.models.ledger import (
    Account,
    LedgerState,
    RecurringTemplate,
    Tag,
    Transaction,
)
from calm_expenses.services.storage.interface import (
    KeyValueStorageInterface,
    StorageError,
)

logger = structlog.get_logger(__name__)

# Persisted collection name -> record model
COLLECTION_MODELS: dict[str, type[BaseModel]] = {
    "accounts": Account,
    "tags": Tag,
    "transactions": Transaction,
    "recurrings": RecurringTemplate,
}


class LoadResult(BaseModel):
    """What `LedgerStore.load` produced and what it had to throw away."""

    state: LedgerState = Field(default_factory=LedgerState)
    found: bool = Field(
        default=False,
        description="Was there any stored data under the namespace key?"
    )
    problems: list[str] = Field(
        default_factory=list,
        description="Descriptions of discarded data"
    )
    seeded: bool = Field(
        default=False,
        description="Was the default account created during this load?"
    )

    @property
    def recovered(self) -> bool:
        """True when some or all stored data was discarded."""
        return bool(self.problems)


class LedgerStore:
    """
    Reads and writes the ledger under a fixed namespace key.

    Holds no copy of the ledger; each call works on the state it is given.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        namespace_key: str = DEFAULT_NAMESPACE_KEY,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._key = namespace_key
        self._audit_logger = audit_logger

    @property
    def namespace_key(self) -> str:
        return self._key

    def save(self, state: LedgerState) -> bool:
        """
        Overwrite the slot with the given state.

        Returns True if the write succeeded.
        """
        payload = json.dumps(state.to_storage_dict(), ensure_ascii=False)

        try:
            self._storage.set_item(self._key, payload)
        except StorageError as e:
            logger.error("ledger_save_failed", key=self._key, error=str(e))
            if self._audit_logger is not None:
                self._audit_logger.log_save_failed(str(e))
            return False

        logger.debug("ledger_saved", key=self._key, size=len(payload))
        return True

    def load(self) -> LoadResult:
        """
        Read the slot into a fresh LedgerState.

        Each collection is loaded independently: a field that is not an
        array becomes empty, and records that fail validation are skipped.
        """
        try:
            raw = self._storage.get_item(self._key)
        except StorageError as e:
            return self._recovered(LoadResult(), [f"storage read failed: {e}"])

        if not raw:
            return LoadResult()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            return self._recovered(LoadResult(found=True), [f"stored data is not valid JSON: {e}"])

        if not isinstance(data, dict):
            return self._recovered(
                LoadResult(found=True),
                [f"stored data is a {type(data).__name__}, expected an object"],
            )

        problems: list[str] = []
        collections: dict[str, list] = {}

        for name, model in COLLECTION_MODELS.items():
            items = data.get(name)
            if items is None:
                collections[name] = []
                continue
            if not isinstance(items, list):
                problems.append(f"'{name}' is not an array")
                collections[name] = []
                continue

            records = []
            for index, item in enumerate(items):
                try:
                    records.append(model.model_validate(item))
                except ValidationError as e:
                    problems.append(
                        f"{name}[{index}] skipped: {e.error_count()} validation errors"
                    )
            collections[name] = records

        result = LoadResult(state=LedgerState(**collections), found=True)
        if problems:
            return self._recovered(result, problems)
        return result

    def load_or_seed(self, seed_account_name: str = "Cash") -> LoadResult:
        """
        Load the ledger, creating a default account on first run.

        Guarantees at least one account exists so a transaction can
        always be entered.
        """
        result = self.load()

        if not result.state.accounts:
            account = Account(name=seed_account_name)
            result.state.accounts.append(account)
            result.seeded = True
            self.save(result.state)
            logger.info("ledger_seeded", account_id=account.id, name=account.name)
            if self._audit_logger is not None:
                self._audit_logger.log_seed_created(account.id, account.name)

        return result

    def _recovered(self, result: LoadResult, problems: list[str]) -> LoadResult:
        result.problems.extend(problems)
        logger.warning("ledger_load_recovered", key=self._key, problems=problems)
        if self._audit_logger is not None:
            self._audit_logger.log_load_recovered(problems)
        return result
