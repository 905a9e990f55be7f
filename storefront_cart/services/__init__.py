# Cart engine services

from .shipping import FlatRateShippingRule, ShippingRule, ThresholdShippingRule
from .pricing import recompute, resolve_discount
from .coupons import (
    CouponDefinition,
    CouponResolver,
    CouponService,
    HttpCouponService,
    StaticCouponService,
)
from .cart_controller import CartController

__all__ = [
    "FlatRateShippingRule",
    "ShippingRule",
    "ThresholdShippingRule",
    "recompute",
    "resolve_discount",
    "CouponDefinition",
    "CouponResolver",
    "CouponService",
    "HttpCouponService",
    "StaticCouponService",
    "CartController",
]
