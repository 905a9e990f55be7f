"""Coupon models for the cart engine"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .money import to_money


class DiscountKind(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class CouponRejectionReason(str, Enum):
    """Why a coupon code was not accepted"""
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    MINIMUM_NOT_MET = "minimum_not_met"
    ALREADY_USED = "already_used"
    ALREADY_APPLIED = "already_applied"
    NOT_STACKABLE = "not_stackable"
    CART_EMPTY = "cart_empty"


class DiscountEffect(BaseModel):
    """What an accepted coupon takes off the subtotal"""
    kind: DiscountKind = DiscountKind.FIXED
    value: Decimal = Field(ge=0)
    max_amount: Optional[Decimal] = Field(default=None, ge=0)

    class Config:
        frozen = True

    def amount_for(self, total_price: Decimal) -> Decimal:
        """Discount this effect grants on a given pre-discount subtotal"""
        if self.kind == DiscountKind.PERCENTAGE:
            amount = to_money(total_price * self.value / Decimal(100))
        else:
            amount = to_money(self.value)

        if self.max_amount is not None:
            amount = min(amount, to_money(self.max_amount))
        return max(amount, Decimal("0.00"))


class AppliedCoupon(BaseModel):
    """A coupon code accepted onto a cart, with the effect it was accepted with"""
    code: str
    effect: DiscountEffect

    class Config:
        frozen = True


class CouponValidation(BaseModel):
    """Closed response shape of a coupon service"""
    accepted: bool
    discount_effect: Optional[DiscountEffect] = None
    reason: Optional[CouponRejectionReason] = None
    message: Optional[str] = None


class CouponOutcome(BaseModel):
    """Result of resolving a code against the coupon service"""
    accepted: bool
    code: str
    effect: Optional[DiscountEffect] = None
    reason: Optional[CouponRejectionReason] = None
    message: Optional[str] = None
