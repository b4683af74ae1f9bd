"""
Money Utilities - Safe Decimal operations for monetary values.

Avoids float drift by using Decimal throughout. Anything that cannot be
read as a finite number becomes Decimal("0"), so a corrupted price can
never turn a total into NaN.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

Number = Union[str, int, float, Decimal, None]

# 2 decimal places for every amount shown or stored
MONEY_PRECISION = Decimal("0.01")

# Stored totals closer than this to the recomputed value are left alone
TOTAL_TOLERANCE = Decimal("0.01")

CURRENCY_SYMBOL = "Rs"


def to_decimal(value: Number) -> Decimal:
    """
    Convert any value to Decimal safely.

    Args:
        value: Value to convert (str, int, float, Decimal, or None)

    Returns:
        Decimal representation, or Decimal("0") if None/invalid/non-finite
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")

    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, float):
            # Via str so 0.1 stays 0.1
            result = Decimal(str(value))
        elif isinstance(value, (int, str)):
            result = Decimal(value)
        else:
            return Decimal("0")
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")

    if not result.is_finite():
        return Decimal("0")
    return result


def round_money(value: Number) -> Decimal:
    """Round a monetary value to cents."""
    return to_decimal(value).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def add(a: Number, b: Number) -> Decimal:
    """Safe addition of monetary values."""
    return to_decimal(a) + to_decimal(b)


def multiply(value: Number, factor: Number) -> Decimal:
    """Safe multiplication of monetary value by a factor."""
    return to_decimal(value) * to_decimal(factor)


def differs(a: Number, b: Number, tolerance: Decimal = TOTAL_TOLERANCE) -> bool:
    """True when two amounts are further apart than the tolerance."""
    return abs(to_decimal(a) - to_decimal(b)) > tolerance


def to_float(value: Number) -> float:
    """
    Convert to float for display or external APIs.

    Use only at boundaries, not for internal calculations.
    """
    return float(to_decimal(value))


def format_money(value: Number) -> str:
    """Format an amount the way invoices print it, e.g. ``Rs 1,800.00``."""
    return f"{CURRENCY_SYMBOL} {round_money(value):,.2f}"
