# Cart Engine Models

from .money import to_money, CENT, ZERO
from .coupon import (
    AppliedCoupon,
    CouponOutcome,
    CouponRejectionReason,
    CouponValidation,
    DiscountEffect,
    DiscountKind,
)
from .cart import (
    AddItemRequest,
    ApplyCouponRequest,
    Cart,
    CartItem,
    CartResponse,
    CartState,
    CartStatus,
    CouponResponse,
    ErrorDetail,
    ItemVariant,
    NutritionalInfo,
    OpenCartRequest,
    Totals,
    TotalsResponse,
    UpdateQuantityRequest,
)

__all__ = [
    "to_money",
    "CENT",
    "ZERO",
    "AppliedCoupon",
    "CouponOutcome",
    "CouponRejectionReason",
    "CouponValidation",
    "DiscountEffect",
    "DiscountKind",
    "AddItemRequest",
    "ApplyCouponRequest",
    "Cart",
    "CartItem",
    "CartResponse",
    "CartState",
    "CartStatus",
    "CouponResponse",
    "ErrorDetail",
    "ItemVariant",
    "NutritionalInfo",
    "OpenCartRequest",
    "Totals",
    "TotalsResponse",
    "UpdateQuantityRequest",
]
