"""Cart engine exceptions"""

from typing import Optional

from ..models.cart import ErrorDetail


class CartError(Exception):
    """Base exception for cart engine errors"""
    code = "cart_error"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason

    def to_detail(self) -> ErrorDetail:
        """Shape stored in the cart state's error slot"""
        return ErrorDetail(code=self.code, message=self.message, reason=self.reason)


class ItemNotFound(CartError):
    """No line with the given item id"""
    code = "item_not_found"


class InvalidQuantity(CartError):
    """Quantity is negative, zero where a line is required, or not an integer"""
    code = "invalid_quantity"


class OperationInProgress(CartError):
    """Another mutation on the same cart has not finished"""
    code = "operation_in_progress"


class CouponRejected(CartError):
    """Coupon service declined the code; an expected outcome, not a fault"""
    code = "coupon_rejected"


class ExternalServiceUnavailable(CartError):
    """Coupon, shipping or persistence collaborator failed"""
    code = "external_service_unavailable"
