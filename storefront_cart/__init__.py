# Storefront cart and pricing engine

from .services.cart_controller import CartController

__all__ = ["CartController"]
