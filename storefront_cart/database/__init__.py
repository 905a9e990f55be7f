# Storage modules

from .line_items import LineItemStore, check_quantity
from .carts import CartDatabase, CartRepository, FileCartDatabase

__all__ = [
    "LineItemStore",
    "check_quantity",
    "CartDatabase",
    "CartRepository",
    "FileCartDatabase",
]
