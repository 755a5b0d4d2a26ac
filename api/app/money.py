"""Exact money and point arithmetic.

Binary floats never touch balances. Values stay full precision while they are
being computed and are rounded half-even only when persisted or displayed.
"""
from decimal import Decimal, ROUND_HALF_EVEN

# Scales match the Numeric column definitions
MONEY_PLACES = Decimal('0.00000001')      # Numeric(20, 8)
RATE_PLACES = Decimal('0.000000000001')   # Numeric(30, 12)
POINT_PLACES = Decimal('0.0001')          # Numeric(18, 4)
CENTS = Decimal('0.01')

ZERO = Decimal('0')


def to_decimal(value: Decimal | int | str) -> Decimal:
    """Coerce to Decimal. Floats are refused outright."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError('Float amounts are not accepted, pass a str or Decimal')
    return Decimal(value)


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_EVEN)


def quantize_rate(value: Decimal) -> Decimal:
    return value.quantize(RATE_PLACES, rounding=ROUND_HALF_EVEN)


def quantize_points(value: Decimal) -> Decimal:
    return value.quantize(POINT_PLACES, rounding=ROUND_HALF_EVEN)


def display(value: Decimal) -> str:
    """Two-decimal dollar string for messages."""
    return str(value.quantize(CENTS, rounding=ROUND_HALF_EVEN))
