"""
Core Ledger Models for Calm Expenses

These models define the schemas for the four ledger collections
(accounts, tags, transactions, recurring templates) and for the values
derived from them.

DESIGN DECISION: Records are frozen Pydantic models.
An update builds a new, fully validated record and swaps it into the
collection, so a failed validation can never leave a half-edited record
behind.

Persisted field names follow the browser version's storage layout
(`initial`, `type`, `accountId`, `tagIds`, `createdAt`, ...). Python code
uses snake_case attribute names; the aliases only matter at the storage
boundary.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)

from calm_expenses.models.money import MAX_MONEY, ZERO, parse_money

HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


def generate_id() -> str:
    """
    Produce an opaque record identifier.

    Random UUID4 strings; collisions are treated as impossible, so no
    check against existing ids is made.
    """
    return str(uuid4())


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _unique_in_order(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


# =============================================================================
# ENUMS
# =============================================================================

class TransactionKind(str, Enum):
    """
    Direction of a transaction.

    Amounts are always stored positive; the kind carries the sign.
    """
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def sign(self) -> int:
        return 1 if self is TransactionKind.INCOME else -1


# =============================================================================
# LEDGER RECORDS
# =============================================================================

_RECORD_CONFIG = ConfigDict(
    str_strip_whitespace=True,
    populate_by_name=True,
    frozen=True,
)


class Account(BaseModel):
    """A money container. Its balance is derived, never stored."""
    model_config = _RECORD_CONFIG

    id: str = Field(default_factory=generate_id, min_length=1)
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Account name"
    )
    initial_balance: Decimal = Field(
        default=ZERO,
        alias="initial",
        description="Opening balance, may be zero or negative"
    )

    @field_validator("initial_balance", mode="before")
    @classmethod
    def parse_initial_balance(cls, v: Any) -> Decimal:
        if v is None or v == "":
            return ZERO
        parsed = parse_money(v)
        if parsed is None:
            raise ValueError(f"Initial balance must be a finite number smaller than {MAX_MONEY}")
        return parsed

    @field_serializer("initial_balance", when_used="json")
    def serialize_initial_balance(self, v: Decimal) -> float:
        return float(v)


class Tag(BaseModel):
    """A coloured label attached to transactions and recurring templates."""
    model_config = _RECORD_CONFIG

    id: str = Field(default_factory=generate_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(
        ...,
        pattern=HEX_COLOR_PATTERN,
        description="Six digit hex colour, e.g. #84d19a"
    )


class Transaction(BaseModel):
    """
    A single income or expense movement on one account.

    Transactions are never edited in place. The only later change is
    removing a deleted tag from `tag_ids`.
    """
    model_config = _RECORD_CONFIG

    id: str = Field(default_factory=generate_id, min_length=1)
    kind: TransactionKind = Field(..., alias="type")
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive amount, rounded to cents"
    )
    date: dt.date = Field(..., description="Calendar date of the movement")
    account_id: str = Field(..., min_length=1, alias="accountId")
    tag_ids: list[str] = Field(default_factory=list, alias="tagIds")
    note: str = Field(default="", max_length=1000)
    created_at: dt.datetime = Field(
        default_factory=utc_now,
        alias="createdAt",
        description="Creation time, only used to break ordering ties"
    )

    # Present only on transactions generated from a recurring template
    recurring_id: Optional[str] = Field(default=None, alias="recurringId")
    recurring_key: Optional[str] = Field(default=None, alias="recurringKey")

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> Decimal:
        parsed = parse_money(v)
        if parsed is None:
            raise ValueError(f"Amount must be a finite number smaller than {MAX_MONEY}")
        return parsed

    @field_validator("tag_ids", mode="before")
    @classmethod
    def default_tag_ids(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("tag_ids")
    @classmethod
    def dedupe_tag_ids(cls, v: list[str]) -> list[str]:
        return _unique_in_order(v)

    @field_validator("note", mode="before")
    @classmethod
    def default_note(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: dt.datetime) -> dt.datetime:
        # Naive and aware datetimes cannot be compared when sorting
        if v.tzinfo is None:
            return v.replace(tzinfo=dt.timezone.utc)
        return v

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, v: Decimal) -> float:
        return float(v)

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign implied by the kind."""
        return self.amount if self.kind is TransactionKind.INCOME else -self.amount

    @property
    def is_recurring(self) -> bool:
        return self.recurring_id is not None

    def sort_key(self) -> tuple[dt.date, dt.datetime]:
        return (self.date, self.created_at)


class RecurringTemplate(BaseModel):
    """
    A reusable pattern the user turns into a transaction by hand.

    There is no schedule. `active` only decides whether the interface asks
    for confirmation before instantiating.
    """
    model_config = _RECORD_CONFIG

    id: str = Field(default_factory=generate_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    kind: TransactionKind = Field(..., alias="type")
    amount: Decimal = Field(..., gt=0)
    account_id: str = Field(..., min_length=1, alias="accountId")
    tag_ids: list[str] = Field(default_factory=list, alias="tagIds")
    active: bool = True

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> Decimal:
        parsed = parse_money(v)
        if parsed is None:
            raise ValueError(f"Amount must be a finite number smaller than {MAX_MONEY}")
        return parsed

    @field_validator("tag_ids", mode="before")
    @classmethod
    def default_tag_ids(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("tag_ids")
    @classmethod
    def dedupe_tag_ids(cls, v: list[str]) -> list[str]:
        return _unique_in_order(v)

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, v: Decimal) -> float:
        return float(v)


# =============================================================================
# APPLICATION STATE
# =============================================================================

class LedgerState(BaseModel):
    """
    The four ledger collections.

    Owned by exactly one LedgerController. The persistence store only
    serializes and deserializes it.
    """

    accounts: list[Account] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    recurrings: list[RecurringTemplate] = Field(default_factory=list)

    def to_storage_dict(self) -> dict[str, Any]:
        """Convert to the persisted JSON layout."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def copy_collections(self) -> "LedgerState":
        """Shallow copy with fresh lists; records are frozen so may be shared."""
        return LedgerState(
            accounts=list(self.accounts),
            tags=list(self.tags),
            transactions=list(self.transactions),
            recurrings=list(self.recurrings),
        )


# =============================================================================
# DERIVED VALUES
# =============================================================================

class MonthTotals(BaseModel):
    """Income and expense totals over a half-open month interval."""

    start: dt.date = Field(..., description="First day of the month (inclusive)")
    end: dt.date = Field(..., description="First day of the next month (exclusive)")
    income: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single rule violation found in user input."""

    field: str = Field(..., description="Field with the issue")
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'unknown_reference')"
    )
    message: str = Field(..., description="Human-readable description of the issue")
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Outcome of validating one mutation request.

    `cleaned` holds the parsed values (trimmed names, rounded amounts)
    and is only meaningful when the result is valid.
    """

    entity_type: str = Field(..., description="What was validated, e.g. 'account'")
    issues: list[ValidationIssue] = Field(default_factory=list)
    cleaned: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    @property
    def error_count(self) -> int:
        return len(self.issues)

    def fields_with_issues(self) -> list[str]:
        return [issue.field for issue in self.issues]
