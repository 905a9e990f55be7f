"""Cart API routes"""

from fastapi import APIRouter, Depends, HTTPException, Request

from ..core.errors import (
    CartError,
    ExternalServiceUnavailable,
    InvalidQuantity,
    ItemNotFound,
    OperationInProgress,
)
from ..core.session import CartSessionManager
from ..models.cart import (
    AddItemRequest,
    ApplyCouponRequest,
    CartResponse,
    CouponResponse,
    OpenCartRequest,
    TotalsResponse,
    UpdateQuantityRequest,
)
from ..services.cart_controller import CartController

router = APIRouter(prefix="/api/cart", tags=["Cart"])

STATUS_CODES = {
    ItemNotFound: 404,
    InvalidQuantity: 422,
    OperationInProgress: 409,
    ExternalServiceUnavailable: 503,
}


def to_http_error(error: CartError) -> HTTPException:
    """Map an engine error onto an HTTP error response"""
    status_code = next(
        (code for exc_type, code in STATUS_CODES.items() if isinstance(error, exc_type)),
        400,
    )
    return HTTPException(status_code=status_code, detail=error.to_detail().model_dump())


def get_session_manager(request: Request) -> CartSessionManager:
    """Session manager owned by the running application"""
    return request.app.state.session_manager


def get_controller(
    cart_id: str,
    manager: CartSessionManager = Depends(get_session_manager),
) -> CartController:
    """Resolve the live controller for a cart ID"""
    session = manager.get_session(cart_id)
    if not session:
        raise HTTPException(status_code=404, detail="Cart not found")
    return session.controller


@router.post("", response_model=CartResponse)
async def open_cart(
    request: OpenCartRequest,
    manager: CartSessionManager = Depends(get_session_manager),
):
    """Open a cart session, restoring a stored cart when the ID is known"""
    try:
        session = manager.open_session(request.cart_id)
    except CartError as e:
        raise to_http_error(e)
    return CartResponse(state=session.controller.state, message=f"Cart {session.cart_id} open")


@router.get("/{cart_id}", response_model=CartResponse)
async def get_cart(controller: CartController = Depends(get_controller)):
    """Get the current cart state"""
    return CartResponse(state=controller.state)


@router.get("/{cart_id}/totals", response_model=TotalsResponse)
async def get_totals(controller: CartController = Depends(get_controller)):
    """Get the cart totals and how far it is from free shipping"""
    try:
        totals = controller.calculate_totals()
    except CartError as e:
        raise to_http_error(e)

    remaining = None
    remaining_for_free_shipping = getattr(controller.shipping_rule, "remaining_for_free_shipping", None)
    if remaining_for_free_shipping and totals.total_items:
        remaining = remaining_for_free_shipping(totals.total_price)

    return TotalsResponse(
        totals=totals,
        currency=controller.currency,
        free_shipping_remaining=remaining,
    )


@router.post("/{cart_id}/items", response_model=CartResponse)
async def add_item(
    request: AddItemRequest,
    controller: CartController = Depends(get_controller),
):
    """Add an item to the cart"""
    try:
        item_id = controller.add_item(request)
    except CartError as e:
        raise to_http_error(e)
    return CartResponse(
        state=controller.state,
        message=f"Added {request.quantity}x {request.name} to cart as {item_id}",
    )


@router.put("/{cart_id}/items/{item_id}", response_model=CartResponse)
async def update_item(
    item_id: str,
    request: UpdateQuantityRequest,
    controller: CartController = Depends(get_controller),
):
    """Update item quantity in cart"""
    try:
        controller.update_quantity(item_id, request.quantity)
    except CartError as e:
        raise to_http_error(e)
    return CartResponse(state=controller.state, message="Cart updated")


@router.delete("/{cart_id}/items/{item_id}", response_model=CartResponse)
async def remove_item(
    item_id: str,
    controller: CartController = Depends(get_controller),
):
    """Remove an item from the cart"""
    try:
        controller.remove_item(item_id)
    except CartError as e:
        raise to_http_error(e)
    return CartResponse(state=controller.state, message="Item removed")


@router.delete("/{cart_id}", response_model=CartResponse)
async def clear_cart(controller: CartController = Depends(get_controller)):
    """Clear the cart"""
    controller.clear_cart()
    return CartResponse(state=controller.state, message="Cart cleared")


@router.post("/{cart_id}/coupons", response_model=CouponResponse)
async def apply_coupon(
    request: ApplyCouponRequest,
    controller: CartController = Depends(get_controller),
):
    """Apply a coupon code; a rejected code is a normal response, not an error"""
    try:
        applied = await controller.apply_coupon(request.code)
    except CartError as e:
        raise to_http_error(e)

    state = controller.state
    if applied:
        message = "Coupon applied successfully"
    elif state.error:
        message = state.error.message
    else:
        message = "Coupon was not applied"
    return CouponResponse(applied=applied, state=state, message=message)


@router.delete("/{cart_id}/coupons/{code}", response_model=CartResponse)
async def remove_coupon(
    code: str,
    controller: CartController = Depends(get_controller),
):
    """Remove a coupon code"""
    try:
        controller.remove_coupon(code)
    except CartError as e:
        raise to_http_error(e)
    return CartResponse(state=controller.state, message="Coupon removed")


@router.post("/{cart_id}/save", response_model=CartResponse)
async def save_cart(controller: CartController = Depends(get_controller)):
    """Persist the cart now"""
    try:
        controller.save()
    except CartError as e:
        raise to_http_error(e)
    return CartResponse(state=controller.state, message="Cart saved")


@router.post("/{cart_id}/checkout", response_model=CartResponse)
async def complete_checkout(
    cart_id: str,
    controller: CartController = Depends(get_controller),
    manager: CartSessionManager = Depends(get_session_manager),
):
    """Close out the cart after a completed checkout"""
    try:
        final_cart = controller.complete_checkout()
    except CartError as e:
        raise to_http_error(e)
    manager.discard_session(cart_id)

    message = "Checkout completed"
    if final_cart:
        message = f"Checkout completed: {final_cart.final_total} {final_cart.currency}"
    return CartResponse(state=controller.state, message=message)
