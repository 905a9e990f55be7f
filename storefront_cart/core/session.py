"""Session management for cart controllers"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..database.carts import CartDatabase, CartRepository, FileCartDatabase
from ..services.cart_controller import CartController
from ..services.coupons import CouponService, HttpCouponService, StaticCouponService
from ..services.shipping import ShippingRule, ThresholdShippingRule
from .config import Settings
from .errors import CartError

logger = logging.getLogger(__name__)


@dataclass
class CartSession:
    """One shopping session and the controller that owns its cart"""
    controller: CartController
    created_at: datetime
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def cart_id(self) -> str:
        return self.controller.cart_id

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()


class CartSessionManager:
    """
    Manages cart sessions.

    Each session gets its own CartController; the coupon service,
    shipping rule and repository are shared collaborators.
    """

    def __init__(
        self,
        coupon_service: Optional[CouponService] = None,
        shipping_rule: Optional[ShippingRule] = None,
        repository: Optional[CartRepository] = None,
        currency: str = "INR",
    ):
        self.coupon_service = coupon_service or StaticCouponService()
        self.shipping_rule = shipping_rule or ThresholdShippingRule()
        self.repository = repository if repository is not None else CartDatabase()
        self.currency = currency
        self.sessions: dict[str, CartSession] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "CartSessionManager":
        """Wire collaborators from configuration"""
        if settings.coupon_service_configured:
            coupon_service = HttpCouponService(
                base_url=settings.coupon_service_url,
                timeout=settings.coupon_service_timeout,
            )
        else:
            coupon_service = StaticCouponService()

        if settings.cart_storage_dir:
            repository = FileCartDatabase(settings.cart_storage_dir)
        else:
            repository = CartDatabase()

        return cls(
            coupon_service=coupon_service,
            shipping_rule=ThresholdShippingRule(
                free_threshold=settings.free_shipping_threshold,
                flat_rate=settings.flat_shipping_rate,
            ),
            repository=repository,
            currency=settings.currency,
        )

    def open_session(self, cart_id: Optional[str] = None) -> CartSession:
        """Get a live session or start one, restoring any stored cart"""
        if cart_id and cart_id in self.sessions:
            session = self.sessions[cart_id]
            session.touch()
            return session

        controller = CartController(
            cart_id=cart_id or str(uuid.uuid4()),
            coupon_service=self.coupon_service,
            shipping_rule=self.shipping_rule,
            repository=self.repository,
            currency=self.currency,
        )
        controller.load()

        now = datetime.utcnow()
        session = CartSession(controller=controller, created_at=now, updated_at=now)
        self.sessions[controller.cart_id] = session
        logger.info(f"Opened cart session {controller.cart_id}")
        return session

    def get_session(self, cart_id: str) -> Optional[CartSession]:
        """Get a live session by cart ID"""
        session = self.sessions.get(cart_id)
        if session:
            session.touch()
        return session

    def close_session(self, cart_id: str) -> bool:
        """Persist a session's cart and forget the session"""
        session = self.sessions.get(cart_id)
        if not session:
            return False
        # A failed save keeps the session live so the cart is not lost
        session.controller.save()
        del self.sessions[cart_id]
        logger.info(f"Closed cart session {cart_id}")
        return True

    def discard_session(self, cart_id: str) -> bool:
        """Forget a session without persisting it"""
        if cart_id in self.sessions:
            del self.sessions[cart_id]
            return True
        return False

    def close_all(self) -> None:
        """Persist every live session, e.g. at shutdown"""
        for cart_id in list(self.sessions):
            try:
                self.close_session(cart_id)
            except CartError as e:
                logger.error(f"Could not persist cart {cart_id} at shutdown: {e}")

    def cleanup_old_sessions(self, max_age_hours: float = 24) -> int:
        """Close sessions idle for longer than max_age_hours; returns how many closed"""
        now = datetime.utcnow()
        old_sessions = [
            cid for cid, session in self.sessions.items()
            if (now - session.updated_at).total_seconds() > max_age_hours * 3600
        ]
        closed = 0
        for cid in old_sessions:
            try:
                self.close_session(cid)
                closed += 1
            except CartError as e:
                logger.error(f"Could not persist idle cart {cid}: {e}")
        return closed

    async def sweep_idle_sessions(self, max_age_hours: float, interval_seconds: float) -> None:
        """Periodically close idle sessions until cancelled"""
        while True:
            await asyncio.sleep(interval_seconds)
            closed = self.cleanup_old_sessions(max_age_hours)
            if closed:
                logger.info(f"Closed {closed} idle cart sessions")

    async def aclose(self) -> None:
        """Persist sessions and release the coupon client"""
        self.close_all()
        if isinstance(self.coupon_service, HttpCouponService):
            await self.coupon_service.close()
