"""
Mutation Input Validation

Every mutation entry point validates its raw input here before anything
is changed. Input arrives the way forms deliver it: names and amounts as
text, dates as ISO strings or date objects.

A validation pass produces a ValidationResult:
- `issues` lists every rule broken (all rules are checked, not just the first)
- `cleaned` holds the parsed values the mutation should use

IMPORTANT: Validation never changes ledger state. A result with issues
aborts the whole mutation.
"""

import re
from collections.abc import Collection, Iterable
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from calm_expenses.errors import ValidationFailedError
from calm_expenses.models.ledger import (
    HEX_COLOR_PATTERN,
    TransactionKind,
    ValidationIssue,
    ValidationResult,
)
from calm_expenses.models.money import MAX_MONEY, MoneyInput, ZERO, parse_money

_HEX_COLOR_RE = re.compile(HEX_COLOR_PATTERN)


class LedgerValidator:
    """
    Validates raw mutation input for the four ledger collections.

    Stateless: callers pass the ids of existing accounts where a
    reference has to be checked.
    """

    # -------------------------------------------------------------------------
    # Field rules
    # -------------------------------------------------------------------------

    def _check_name(
        self,
        raw: Optional[str],
        issues: list[ValidationIssue],
        field: str = "name",
    ) -> str:
        name = (raw or "").strip()
        if not name:
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing",
                message="Name is required",
                suggested_fix="Enter a name that is not just spaces",
            ))
        return name

    def _check_color(self, raw: Optional[str], issues: list[ValidationIssue]) -> str:
        color = (raw or "").strip()
        if not _HEX_COLOR_RE.match(color):
            issues.append(ValidationIssue(
                field="color",
                issue_type="invalid_format",
                message=f"Colour '{color}' is not a hex colour",
                suggested_fix="Use the #RRGGBB form, e.g. #84d19a",
            ))
        return color

    def _check_amount(self, raw: MoneyInput, issues: list[ValidationIssue]) -> Optional[Decimal]:
        amount = parse_money(raw)
        if amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=f"Amount must be a number smaller than {MAX_MONEY:,}",
            ))
        elif amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                suggested_fix="Choose income or expense instead of a negative amount",
            ))
        return amount

    def _check_initial_balance(self, raw: MoneyInput, issues: list[ValidationIssue]) -> Optional[Decimal]:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return ZERO
        initial = parse_money(raw)
        if initial is None:
            issues.append(ValidationIssue(
                field="initial_balance",
                issue_type="invalid_format",
                message=f"Initial balance must be a number smaller than {MAX_MONEY:,}",
                suggested_fix="Use 0 if the account starts empty",
            ))
        return initial

    def _check_kind(self, raw: Any, issues: list[ValidationIssue]) -> Optional[TransactionKind]:
        try:
            return TransactionKind(raw)
        except ValueError:
            issues.append(ValidationIssue(
                field="kind",
                issue_type="invalid_value",
                message=f"Kind must be 'income' or 'expense', got {raw!r}",
            ))
            return None

    def _check_account(
        self,
        account_id: Optional[str],
        known_account_ids: Collection[str],
        issues: list[ValidationIssue],
    ) -> Optional[str]:
        if not account_id:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="missing",
                message="Account is required",
            ))
        elif account_id not in known_account_ids:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="unknown_reference",
                message=f"Account {account_id} does not exist",
                suggested_fix="Pick one of the existing accounts",
            ))
        return account_id

    def _check_date(
        self,
        raw: Any,
        today: date,
        issues: list[ValidationIssue],
    ) -> Optional[date]:
        if raw is None or raw == "":
            return today
        if isinstance(raw, datetime):
            return raw.date()
        if isinstance(raw, date):
            return raw
        try:
            # fromisoformat also accepts compact forms, so pin the length
            if len(str(raw).strip()) != 10:
                raise ValueError(raw)
            return date.fromisoformat(str(raw).strip())
        except ValueError:
            issues.append(ValidationIssue(
                field="date",
                issue_type="invalid_format",
                message=f"Date '{raw}' is not a YYYY-MM-DD date",
            ))
            return None

    @staticmethod
    def _clean_tag_ids(tag_ids: Optional[Iterable[str]]) -> list[str]:
        return list(dict.fromkeys(tag_ids or ()))

    # -------------------------------------------------------------------------
    # Record rules
    # -------------------------------------------------------------------------

    def validate_account(self, name: Optional[str], initial_balance: MoneyInput = None) -> ValidationResult:
        """Account name must be non-blank; initial balance any finite number."""
        issues: list[ValidationIssue] = []
        cleaned = {
            "name": self._check_name(name, issues),
            "initial_balance": self._check_initial_balance(initial_balance, issues),
        }
        return ValidationResult(entity_type="account", issues=issues, cleaned=cleaned)

    def validate_tag(self, name: Optional[str], color: Optional[str]) -> ValidationResult:
        issues: list[ValidationIssue] = []
        cleaned = {
            "name": self._check_name(name, issues),
            "color": self._check_color(color, issues),
        }
        return ValidationResult(entity_type="tag", issues=issues, cleaned=cleaned)

    def validate_transaction(
        self,
        kind: Any,
        amount: MoneyInput,
        account_id: Optional[str],
        known_account_ids: Collection[str],
        today: date,
        on: Any = None,
        tag_ids: Optional[Iterable[str]] = None,
        note: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate a new one-off transaction.

        A blank date means today.
        """
        issues: list[ValidationIssue] = []
        cleaned = {
            "kind": self._check_kind(kind, issues),
            "amount": self._check_amount(amount, issues),
            "account_id": self._check_account(account_id, known_account_ids, issues),
            "date": self._check_date(on, today, issues),
            "tag_ids": self._clean_tag_ids(tag_ids),
            "note": (note or "").strip(),
        }
        return ValidationResult(entity_type="transaction", issues=issues, cleaned=cleaned)

    def validate_recurring(
        self,
        name: Optional[str],
        kind: Any,
        amount: MoneyInput,
        account_id: Optional[str],
        known_account_ids: Collection[str],
        tag_ids: Optional[Iterable[str]] = None,
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        cleaned = {
            "name": self._check_name(name, issues),
            "kind": self._check_kind(kind, issues),
            "amount": self._check_amount(amount, issues),
            "account_id": self._check_account(account_id, known_account_ids, issues),
            "tag_ids": self._clean_tag_ids(tag_ids),
        }
        return ValidationResult(entity_type="recurring", issues=issues, cleaned=cleaned)

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    @staticmethod
    def require_valid(result: ValidationResult) -> dict[str, Any]:
        """Return the cleaned values, or raise if any rule was broken."""
        if not result.is_valid:
            raise ValidationFailedError(result)
        return result.cleaned

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a short summary of validation results for display.
        """
        if result.is_valid:
            return "All checks passed."

        lines = [f"Please fix the following before saving the {result.entity_type}:"]
        for issue in result.issues:
            lines.append(f"   • {issue.message}")
            if issue.suggested_fix:
                lines.append(f"     💡 {issue.suggested_fix}")
        return "\n".join(lines)
