"""
Totals Calculator

Derives a cart's aggregate figures from its lines, applied coupons and
shipping rule. Pure: it never touches the cart it is computing for.
"""

import logging
from decimal import Decimal
from typing import Iterable, Sequence

from ..core.errors import ExternalServiceUnavailable
from ..models.cart import CartItem, Totals
from ..models.coupon import AppliedCoupon
from ..models.money import ZERO, to_money
from .shipping import ShippingRule

logger = logging.getLogger(__name__)


def resolve_discount(total_price: Decimal, applied_coupons: Iterable[AppliedCoupon]) -> Decimal:
    """
    Fold coupon effects over the subtotal.

    Coupons are independent and additive: each one's amount is computed
    against the same pre-discount subtotal, never against what an
    earlier coupon left over. The sum is capped at the subtotal.
    """
    discount = ZERO
    for coupon in applied_coupons:
        discount += coupon.effect.amount_for(total_price)
    return min(to_money(discount), total_price)


def quote_shipping(shipping_rule: ShippingRule, total_price: Decimal, total_items: int) -> Decimal:
    """Ask the shipping rule for a cost, turning its failures into ours"""
    try:
        cost = shipping_rule.quote(total_price, total_items)
    except Exception as e:
        logger.error(f"Shipping rule failed for subtotal {total_price}: {e}")
        raise ExternalServiceUnavailable("Shipping quote unavailable") from e

    cost = to_money(cost)
    if cost < ZERO:
        raise ExternalServiceUnavailable(f"Shipping rule returned a negative cost: {cost}")
    return cost


def recompute(
    items: Sequence[CartItem],
    applied_coupons: Sequence[AppliedCoupon],
    shipping_rule: ShippingRule,
) -> Totals:
    """
    Recalculate cart totals.

    Steps:
    1. Sum quantities and price x quantity using the unit price captured
       when the line was added
    2. Resolve the discount from every applied coupon
    3. Quote shipping on the pre-discount subtotal
    4. final_total = max(0, total_price - discount_amount) + shipping_cost
    """
    total_items = sum(item.quantity for item in items)
    total_price = to_money(sum((item.line_total for item in items), ZERO))

    discount_amount = resolve_discount(total_price, applied_coupons)
    shipping_cost = quote_shipping(shipping_rule, total_price, total_items)

    final_total = max(total_price - discount_amount, ZERO) + shipping_cost

    return Totals(
        total_items=total_items,
        total_price=total_price,
        discount_amount=discount_amount,
        shipping_cost=shipping_cost,
        final_total=to_money(final_total),
    )
