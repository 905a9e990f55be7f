"""Money helpers: every amount is a Decimal with two places"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Union[Decimal, int, float, str]) -> Decimal:
    """Quantize a value to cents, rounding half up"""
    if not isinstance(value, Decimal):
        # str() keeps floats like 0.1 from dragging binary noise in
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
