"""
Cart Controller

Sole writer of one cart. Every mutation is applied to a scratch
line-item store, re-totalled, and only then swapped in as the new cart
snapshot, so readers never see lines and totals that disagree.

Coupon application is the only operation that suspends. While a lookup
is outstanding the cart is `mutating`: other item mutations and a
second coupon apply are refused with OperationInProgress, while
`clear_cart` and `remove_coupon` supersede the lookup and its eventual
answer is dropped.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from ..core.errors import (
    CartError,
    CouponRejected,
    ExternalServiceUnavailable,
    ItemNotFound,
    OperationInProgress,
)
from ..database.carts import CartRepository
from ..database.line_items import LineItemStore
from ..models.cart import (
    AddItemRequest,
    Cart,
    CartItem,
    CartState,
    CartStatus,
    ErrorDetail,
    Totals,
)
from ..models.coupon import AppliedCoupon, CouponRejectionReason
from .coupons import CouponResolver, CouponService, StaticCouponService
from .pricing import recompute
from .shipping import ShippingRule, ThresholdShippingRule

logger = logging.getLogger(__name__)


class CartController:
    """Owns one session's cart and serializes every change to it"""

    def __init__(
        self,
        cart_id: Optional[str] = None,
        coupon_service: Optional[CouponService] = None,
        shipping_rule: Optional[ShippingRule] = None,
        repository: Optional[CartRepository] = None,
        currency: str = "INR",
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.cart_id = cart_id or str(uuid.uuid4())
        self.resolver = CouponResolver(coupon_service or StaticCouponService())
        self.shipping_rule = shipping_rule or ThresholdShippingRule()
        self.repository = repository
        self.currency = currency
        self._id_factory = id_factory

        self._cart: Optional[Cart] = None
        self._error: Optional[ErrorDetail] = None
        # Bumped on every commit and every coupon lookup start
        self._sequence = 0
        # Sequence number of the outstanding coupon lookup, if any
        self._pending: Optional[int] = None

    # ==================== State ====================

    @property
    def cart(self) -> Optional[Cart]:
        """Last committed cart snapshot (a copy)"""
        return self._cart.model_copy(deep=True) if self._cart else None

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def is_loading(self) -> bool:
        return self._pending is not None

    @property
    def status(self) -> CartStatus:
        if self._pending is not None:
            return CartStatus.MUTATING
        if self._cart is None:
            return CartStatus.EMPTY
        if self._error is not None:
            return CartStatus.READY_WITH_ERROR
        return CartStatus.READY

    @property
    def state(self) -> CartState:
        return CartState(
            cart=self.cart,
            is_loading=self.is_loading,
            error=self._error.model_copy() if self._error else None,
            status=self.status,
        )

    def is_in_cart(self, product_id: str) -> bool:
        """Check if any line holds the product"""
        if not self._cart:
            return False
        return any(item.product_id == product_id for item in self._cart.items)

    def get_item_quantity(self, product_id: str) -> int:
        """Total quantity of a product across all of its variant lines"""
        if not self._cart:
            return 0
        return sum(item.quantity for item in self._cart.items if item.product_id == product_id)

    def calculate_totals(self) -> Totals:
        """Derive totals for the committed cart without changing it"""
        if not self._cart:
            return Totals()
        return recompute(self._cart.items, self._cart.applied_coupons, self.shipping_rule)

    # ==================== Item mutations ====================

    def add_item(self, candidate: AddItemRequest) -> str:
        """Add a product, merging into a line with the same product and variant"""
        self._guard("add_item")
        try:
            store = self._store()
            item_id = store.add(candidate)
            self._commit(store.items, self._applied())
        except CartError as e:
            self._fail(e)
            raise

        logger.info(
            f"Cart {self.cart_id}: added {candidate.quantity}x {candidate.product_id} "
            f"to line {item_id}"
        )
        return item_id

    def remove_item(self, item_id: str) -> None:
        """Remove a line; unknown ids are ignored"""
        self._guard("remove_item")
        if not self._cart:
            self._error = None
            return

        try:
            store = self._store()
            if not store.remove(item_id):
                logger.debug(f"Cart {self.cart_id}: remove of unknown line {item_id} ignored")
                self._error = None
                return
            self._commit(store.items, self._applied())
        except CartError as e:
            self._fail(e)
            raise

        logger.info(f"Cart {self.cart_id}: removed line {item_id}")

    def update_quantity(self, item_id: str, quantity: int) -> None:
        """Set a line's quantity; zero removes it"""
        self._guard("update_quantity")
        try:
            if not self._cart:
                raise ItemNotFound(f"Item {item_id} is not in the cart")
            store = self._store()
            store.set_quantity(item_id, quantity)
            self._commit(store.items, self._applied())
        except CartError as e:
            self._fail(e)
            raise

        logger.info(f"Cart {self.cart_id}: line {item_id} set to quantity {quantity}")

    def clear_cart(self) -> None:
        """Destroy the cart; supersedes any outstanding coupon lookup"""
        self._supersede_pending("clear_cart")
        self._cart = None
        self._error = None
        self._sequence += 1
        logger.info(f"Cart {self.cart_id}: cleared")

    # ==================== Coupons ====================

    async def apply_coupon(self, code: str) -> bool:
        """
        Validate a coupon code and apply it on acceptance.

        Returns:
            True if the coupon was applied. Rejections and coupon service
            failures return False and are recorded in the error slot.

        Raises:
            OperationInProgress: another coupon lookup is outstanding
        """
        if self._pending is not None:
            error = OperationInProgress(
                f"Cart {self.cart_id} is already applying a coupon"
            )
            self._fail(error)
            raise error

        self._sequence += 1
        token = self._sequence
        self._pending = token
        snapshot = self.cart

        try:
            try:
                outcome = await self._resolve_coupon(code, snapshot)
            except ExternalServiceUnavailable as e:
                if self._is_current(token):
                    self._pending = None
                    self._fail(e)
                return False

            if not self._is_current(token):
                logger.info(
                    f"Cart {self.cart_id}: discarding stale coupon result for {outcome.code}"
                )
                return False

            self._pending = None

            if outcome.reason == CouponRejectionReason.ALREADY_APPLIED:
                logger.info(f"Cart {self.cart_id}: coupon {outcome.code} already applied")
                return False

            if not outcome.accepted:
                logger.info(
                    f"Cart {self.cart_id}: coupon {outcome.code} rejected ({outcome.reason.value})"
                )
                self._fail(CouponRejected(outcome.message, reason=outcome.reason.value))
                return False

            try:
                self._commit(
                    self._cart.items,
                    self.resolver.with_coupon(self._applied(), outcome),
                )
            except CartError as e:
                self._fail(e)
                return False

            logger.info(f"Cart {self.cart_id}: coupon {outcome.code} applied")
            return True
        finally:
            if self._pending == token:
                self._pending = None

    def remove_coupon(self, code: str) -> None:
        """Drop a coupon code; supersedes any outstanding coupon lookup"""
        self._supersede_pending("remove_coupon")
        if not self._cart:
            self._error = None
            self._sequence += 1
            return

        try:
            self._commit(
                self._cart.items,
                self.resolver.without_coupon(self._applied(), code),
            )
        except CartError as e:
            self._fail(e)
            raise

        logger.info(f"Cart {self.cart_id}: coupon {CouponResolver.normalize(code)} removed")

    # ==================== Persistence ====================

    def load(self) -> bool:
        """
        Restore the cart from the repository at session start.

        Stored totals are not trusted; they are recomputed from the stored
        lines and coupons before the cart becomes visible.

        Returns:
            True if a stored cart was found
        """
        self._guard("load")
        if not self.repository:
            return False

        previous = self._cart
        try:
            stored = self.repository.load(self.cart_id)
            if stored is None:
                return False
            # Keeps the stored created_at and currency through the commit
            self._cart = stored
            self._commit(stored.items, stored.applied_coupons)
        except CartError as e:
            self._cart = previous
            self._fail(e)
            raise

        logger.info(f"Cart {self.cart_id}: loaded {len(stored.items)} lines")
        return True

    def save(self) -> None:
        """Persist the last committed snapshot at a session boundary"""
        if not self.repository:
            return

        try:
            if self._cart is None:
                self.repository.delete(self.cart_id)
            else:
                self.repository.save(self._cart)
        except CartError as e:
            self._fail(e)
            raise

        logger.debug(f"Cart {self.cart_id}: saved")

    def complete_checkout(self) -> Optional[Cart]:
        """End the cart's lifecycle after a completed checkout"""
        self._guard("complete_checkout")
        final_cart = self.cart

        if self.repository:
            try:
                self.repository.delete(self.cart_id)
            except CartError as e:
                self._fail(e)
                raise

        self._cart = None
        self._error = None
        self._sequence += 1
        logger.info(f"Cart {self.cart_id}: checkout completed")
        return final_cart

    # ==================== Internals ====================

    def _store(self) -> LineItemStore:
        items = self._cart.items if self._cart else []
        if self._id_factory:
            return LineItemStore(items, id_factory=self._id_factory)
        return LineItemStore(items)

    def _applied(self) -> list[AppliedCoupon]:
        return list(self._cart.applied_coupons) if self._cart else []

    def _guard(self, operation: str) -> None:
        if self._pending is not None:
            error = OperationInProgress(
                f"Cannot {operation} on cart {self.cart_id} while a coupon is being applied"
            )
            self._fail(error)
            raise error

    async def _resolve_coupon(self, code: str, snapshot: Optional[Cart]):
        """Resolve a code, turning any coupon service fault into ExternalServiceUnavailable"""
        try:
            return await self.resolver.resolve(code, snapshot)
        except ExternalServiceUnavailable:
            raise
        except Exception as e:
            logger.error(f"Cart {self.cart_id}: coupon service failed: {e!r}")
            raise ExternalServiceUnavailable("Coupon service unavailable") from e

    def _supersede_pending(self, operation: str) -> None:
        if self._pending is not None:
            logger.info(
                f"Cart {self.cart_id}: {operation} supersedes outstanding coupon lookup"
            )
            self._pending = None

    def _is_current(self, token: int) -> bool:
        return self._pending == token and self._sequence == token

    def _fail(self, error: CartError) -> None:
        logger.warning(f"Cart {self.cart_id}: {error.code}: {error.message}")
        self._error = error.to_detail()

    def _commit(self, items: list[CartItem], applied_coupons: list[AppliedCoupon]) -> None:
        """Re-total and swap in a new snapshot; nothing changes if totalling fails"""
        totals = recompute(items, applied_coupons, self.shipping_rule)
        now = datetime.utcnow()
        created_at = self._cart.created_at if self._cart else now

        self._cart = Cart(
            cart_id=self.cart_id,
            items=[item.model_copy(deep=True) for item in items],
            applied_coupons=list(applied_coupons),
            currency=self._cart.currency if self._cart else self.currency,
            created_at=created_at,
            updated_at=now,
            **totals.model_dump(),
        )
        self._sequence += 1
        self._error = None
