"""
Money helpers

All monetary values in the ledger are Decimals quantized to two places.
Rounding is half away from zero, so "12.345" becomes 12.35 and "-0.005"
becomes -0.01.

User input arrives as text (form fields) or as numbers (persisted data
written by older versions), so parsing accepts both.

Amounts are limited to MAX_MONEY in magnitude. With two decimal places
that is at most 15 significant digits, which a JSON number (an IEEE
double) stores exactly, so persisted amounts load back unchanged.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
MAX_MONEY = Decimal("10000000000000")

MoneyInput = Union[str, int, float, Decimal, None]


def round_money(value: Union[int, float, Decimal]) -> Decimal:
    """Quantize a value to cents, rounding half away from zero."""
    if isinstance(value, float):
        # str() keeps the shortest repr, avoiding binary expansion artefacts
        value = Decimal(str(value))
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_money(raw: MoneyInput) -> Optional[Decimal]:
    """
    Parse a user-supplied amount.

    Returns None when the input is not a finite number or its magnitude
    reaches MAX_MONEY. Booleans are rejected even though they are ints
    in Python.
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None

    try:
        value = Decimal(str(raw)) if not isinstance(raw, Decimal) else raw
    except (InvalidOperation, ValueError):
        return None

    if not value.is_finite() or abs(value) >= MAX_MONEY:
        return None

    try:
        return round_money(value)
    except InvalidOperation:
        return None


def sum_money(values) -> Decimal:
    """Sum Decimals and round the result to cents."""
    total = ZERO
    for value in values:
        total += value
    return round_money(total)
