# Core: configuration, errors, sessions

from .config import Settings, get_settings
from .errors import (
    CartError,
    CouponRejected,
    ExternalServiceUnavailable,
    InvalidQuantity,
    ItemNotFound,
    OperationInProgress,
)

__all__ = [
    "Settings",
    "get_settings",
    "CartError",
    "CouponRejected",
    "ExternalServiceUnavailable",
    "InvalidQuantity",
    "ItemNotFound",
    "OperationInProgress",
]
