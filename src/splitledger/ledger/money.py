"""Decimal money helpers.

Money is always a ``Decimal`` with two fraction digits. Nothing in the
ledger touches binary floats: float input is converted through ``str()``
so ``0.1`` becomes ``Decimal("0.1")`` rather than its binary expansion.
"""

from collections.abc import Iterable
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation

from ..exceptions import InvalidAmountError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Exact amounts and percentages may be off by this much (upstream float noise)
SPLIT_TOLERANCE = Decimal("0.01")


def to_decimal(value: Decimal | int | str | float, field: str = "amount") -> Decimal:
    """
    Convert a user-supplied number to Decimal without binary float error.

    Args:
        value: Number as Decimal, int, str or float
        field: Name used in the error message

    Returns:
        The value as a finite Decimal

    Raises:
        InvalidAmountError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid {field}: {value!r}", rule="amount_format")

    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise InvalidAmountError(
                f"Invalid {field}: {value!r}", rule="amount_format"
            ) from e

    if not result.is_finite():
        raise InvalidAmountError(f"Invalid {field}: {value!r}", rule="amount_format")

    return result


def floor_cents(amount: Decimal) -> Decimal:
    """Truncate to whole cents (round toward zero)."""
    return amount.quantize(CENT, rounding=ROUND_DOWN)


def round_cents(amount: Decimal) -> Decimal:
    """Round to whole cents using ROUND_HALF_UP."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def is_whole_cents(amount: Decimal) -> bool:
    """Return True if the amount has no digits below one cent."""
    return amount == amount.quantize(CENT, rounding=ROUND_DOWN)


def sum_money(values: Iterable[Decimal]) -> Decimal:
    """Exact Decimal sum of money values."""
    return sum(values, ZERO)


def format_money(amount: Decimal, symbol: str = "$") -> str:
    """
    Format money in accounting style.

    Negative amounts use parentheses: ($85.02)
    Positive amounts are plain:        $85.02
    """
    formatted = f"{symbol}{abs(round_cents(amount)):,.2f}"
    if amount < 0:
        return f"({formatted})"
    return formatted
