import asyncio
from decimal import Decimal
from typing import Optional

import pytest

from storefront_cart.models.cart import AddItemRequest, Cart, ItemVariant, NutritionalInfo
from storefront_cart.models.coupon import (
    CouponRejectionReason,
    CouponValidation,
    DiscountEffect,
    DiscountKind,
)
from storefront_cart.services.cart_controller import CartController
from storefront_cart.services.shipping import ThresholdShippingRule


class GatedCouponService:
    """Coupon service whose answers can be held until the test releases them"""

    def __init__(self, validations: Optional[dict[str, CouponValidation]] = None):
        self.validations = validations or {}
        self.calls: list[str] = []
        self.started = asyncio.Event()
        self.gate = asyncio.Event()
        self.gate.set()

    def hold(self) -> None:
        self.gate.clear()

    def release(self) -> None:
        self.gate.set()

    async def validate(self, code: str, cart: Cart) -> CouponValidation:
        self.calls.append(code)
        self.started.set()
        await self.gate.wait()
        return self.validations.get(
            code,
            CouponValidation(accepted=False, reason=CouponRejectionReason.NOT_FOUND),
        )


def fixed(amount: str) -> DiscountEffect:
    return DiscountEffect(kind=DiscountKind.FIXED, value=Decimal(amount))


def accept(amount: str) -> CouponValidation:
    return CouponValidation(accepted=True, discount_effect=fixed(amount))


def make_item(
    product_id: str = "whey-1kg",
    price: str = "10.00",
    quantity: int = 1,
    size: Optional[str] = None,
    flavor: Optional[str] = None,
) -> AddItemRequest:
    variant = ItemVariant(size=size, flavor=flavor) if (size or flavor) else None
    return AddItemRequest(
        product_id=product_id,
        name=f"Product {product_id}",
        price=Decimal(price),
        image=f"/images/{product_id}.jpg",
        quantity=quantity,
        variant=variant,
        nutritional_info=NutritionalInfo(protein=24, calories=120, serving_size="30g"),
    )


def assert_consistent(cart: Optional[Cart]) -> None:
    """Derived figures agree with the lines they were computed from"""
    if cart is None:
        return
    assert cart.total_items == sum(item.quantity for item in cart.items)
    assert cart.total_price == sum((item.price * item.quantity for item in cart.items), Decimal("0"))
    assert cart.discount_amount >= 0
    assert cart.shipping_cost >= 0
    assert cart.final_total == max(cart.total_price - cart.discount_amount, Decimal("0")) + cart.shipping_cost
    assert len(cart.coupon_codes) == len(set(cart.coupon_codes))


@pytest.fixture
def shipping_rule():
    return ThresholdShippingRule(free_threshold=Decimal("500.00"), flat_rate=Decimal("50.00"))


@pytest.fixture
def coupon_service():
    return GatedCouponService({"SAVE10": accept("3.00"), "SAVE5": accept("5.00")})


@pytest.fixture
def controller(coupon_service, shipping_rule):
    return CartController(
        cart_id="cart-test",
        coupon_service=coupon_service,
        shipping_rule=shipping_rule,
    )
