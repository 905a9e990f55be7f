"""Cart models for the storefront cart engine"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .coupon import AppliedCoupon
from .money import ZERO, to_money


class ItemVariant(BaseModel):
    """Size/flavor a line item was added with"""
    size: Optional[str] = None
    flavor: Optional[str] = None

    class Config:
        frozen = True


class NutritionalInfo(BaseModel):
    """Carried for display only, never computed on"""
    protein: float = 0
    calories: float = 0
    serving_size: str = ""


class CartItem(BaseModel):
    """One line in a shopping cart"""
    id: str
    product_id: str
    name: str
    price: Decimal = Field(ge=0)
    image: Optional[str] = None
    quantity: int = Field(ge=1)
    variant: Optional[ItemVariant] = None
    nutritional_info: Optional[NutritionalInfo] = None

    @field_validator("price")
    @classmethod
    def _quantize_price(cls, value: Decimal) -> Decimal:
        return to_money(value)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.price * self.quantity)


class Totals(BaseModel):
    """Immutable snapshot of the derived cart figures"""
    total_items: int = 0
    total_price: Decimal = ZERO
    discount_amount: Decimal = ZERO
    shipping_cost: Decimal = ZERO
    final_total: Decimal = ZERO

    class Config:
        frozen = True


class Cart(BaseModel):
    """Shopping cart"""
    cart_id: str
    items: list[CartItem] = []
    total_items: int = 0
    total_price: Decimal = ZERO
    discount_amount: Decimal = ZERO
    shipping_cost: Decimal = ZERO
    final_total: Decimal = ZERO
    applied_coupons: list[AppliedCoupon] = []
    currency: str = "INR"
    created_at: datetime
    updated_at: datetime

    @property
    def coupon_codes(self) -> list[str]:
        return [coupon.code for coupon in self.applied_coupons]

    @property
    def totals(self) -> Totals:
        return Totals(
            total_items=self.total_items,
            total_price=self.total_price,
            discount_amount=self.discount_amount,
            shipping_cost=self.shipping_cost,
            final_total=self.final_total,
        )


class CartStatus(str, Enum):
    """Where the cart controller is in its mutation cycle"""
    EMPTY = "empty"
    READY = "ready"
    MUTATING = "mutating"
    READY_WITH_ERROR = "ready_with_error"


class ErrorDetail(BaseModel):
    """Last failed operation, as shown to callers"""
    code: str
    message: str
    reason: Optional[str] = None


class CartState(BaseModel):
    """Engine-visible cart state"""
    cart: Optional[Cart] = None
    is_loading: bool = False
    error: Optional[ErrorDetail] = None
    status: CartStatus = CartStatus.EMPTY


class AddItemRequest(BaseModel):
    """Request to add a product to the cart"""
    product_id: str
    name: str
    price: Decimal = Field(ge=0)
    image: Optional[str] = None
    quantity: int = 1
    variant: Optional[ItemVariant] = None
    nutritional_info: Optional[NutritionalInfo] = None


class UpdateQuantityRequest(BaseModel):
    """Request to set a line's quantity"""
    quantity: int


class ApplyCouponRequest(BaseModel):
    """Request to apply a coupon code"""
    code: str


class OpenCartRequest(BaseModel):
    """Request to open a cart session"""
    cart_id: Optional[str] = None


class CartResponse(BaseModel):
    """Cart API response"""
    state: CartState
    message: Optional[str] = None


class CouponResponse(BaseModel):
    """Coupon API response"""
    applied: bool
    state: CartState
    message: Optional[str] = None


class TotalsResponse(BaseModel):
    """Totals API response"""
    totals: Totals
    currency: str
    free_shipping_remaining: Optional[Decimal] = None
