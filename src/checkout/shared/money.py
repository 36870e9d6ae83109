"""Money arithmetic.

Amounts are stored in Float fields; all arithmetic goes through ``Decimal``
and is quantized to cents so totals are exact at two decimals.
"""

from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")


def to_decimal(amount) -> Decimal:
    """Convert a stored amount to a cent-quantized ``Decimal``."""
    return Decimal(str(amount)).quantize(CENTS, rounding=ROUND_HALF_UP)


def has_whole_cents(amount) -> bool:
    """True when ``amount`` needs no rounding to be stored in cents."""
    return Decimal(str(amount)) == to_decimal(amount)


def line_total(quantity: int, unit_price) -> Decimal:
    return (to_decimal(unit_price) * quantity).quantize(CENTS, rounding=ROUND_HALF_UP)


def sum_lines(lines) -> Decimal:
    """Sum ``(quantity, unit_price)`` pairs."""
    return sum((line_total(quantity, price) for quantity, price in lines), Decimal("0.00"))


def as_float(amount: Decimal) -> float:
    return float(amount.quantize(CENTS, rounding=ROUND_HALF_UP))


def format_amount(amount) -> str:
    return f"${to_decimal(amount):.2f}"
