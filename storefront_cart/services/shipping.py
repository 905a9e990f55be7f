"""Shipping rules consumed by the totals calculator"""

from decimal import Decimal
from typing import Optional, Protocol

from ..models.money import ZERO, to_money


class ShippingRule(Protocol):
    """Quotes a shipping cost from the pre-discount subtotal and item count"""

    def quote(self, total_price: Decimal, total_items: int) -> Decimal:
        ...


class ThresholdShippingRule:
    """Free shipping at or above a subtotal threshold, flat rate below it"""

    def __init__(
        self,
        free_threshold: Decimal = Decimal("500.00"),
        flat_rate: Decimal = Decimal("50.00"),
    ):
        self.free_threshold = to_money(free_threshold)
        self.flat_rate = to_money(flat_rate)

    def quote(self, total_price: Decimal, total_items: int) -> Decimal:
        if total_items == 0 or total_price >= self.free_threshold:
            return ZERO
        return self.flat_rate

    def remaining_for_free_shipping(self, total_price: Decimal) -> Decimal:
        """How much more the customer must add before shipping is free"""
        return max(to_money(self.free_threshold - total_price), ZERO)


class FlatRateShippingRule:
    """Same cost for every non-empty cart"""

    def __init__(self, rate: Decimal):
        self.rate = to_money(rate)

    def quote(self, total_price: Decimal, total_items: int) -> Decimal:
        return self.rate if total_items else ZERO

    def remaining_for_free_shipping(self, total_price: Decimal) -> Optional[Decimal]:
        return None
