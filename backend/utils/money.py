"""Decimal helpers for money, quantities and cost basis.

All ledger arithmetic is done in ``Decimal``.  Inputs are limited to the
precision and magnitude of their storage columns so nothing is silently
rounded or overflows on the way into the database; computed totals are
rounded half-even.
"""

from decimal import ROUND_HALF_EVEN, Decimal

MONEY_PLACES = Decimal("0.0001")
QUANTITY_PLACES = Decimal("0.00000001")
COST_PLACES = Decimal("0.0000000001")

# Exclusive upper bounds: 10 ** (precision - scale) of Numeric(18,4),
# Numeric(18,8) and Numeric(24,10).
MONEY_LIMIT = Decimal("1E+14")
QUANTITY_LIMIT = Decimal("1E+10")
COST_LIMIT = Decimal("1E+14")


def decimal_places(value: Decimal) -> int:
    """Number of digits after the decimal point (0 for integral values)."""
    exponent = value.normalize().as_tuple().exponent
    return max(0, -exponent) if isinstance(exponent, int) else 0


def fits_places(value: Decimal, places: Decimal) -> bool:
    """True if ``value`` needs no more precision than ``places`` provides."""
    return decimal_places(value) <= decimal_places(places)


def within_limit(value: Decimal, limit: Decimal) -> bool:
    """True if ``value`` is strictly below ``limit`` in magnitude."""
    return abs(value) < limit


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_EVEN)


def quantize_cost(value: Decimal) -> Decimal:
    return value.quantize(COST_PLACES, rounding=ROUND_HALF_EVEN)
