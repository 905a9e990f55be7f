"""
Coupon services and resolver

The coupon service owns eligibility (expiry, minimum order, stacking).
The resolver owns everything the engine decides on its own: code
normalization, duplicate detection and turning a service answer into
an outcome the cart controller can commit.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Protocol

import httpx

from ..core.errors import ExternalServiceUnavailable
from ..models.cart import Cart
from ..models.coupon import (
    AppliedCoupon,
    CouponOutcome,
    CouponRejectionReason,
    CouponValidation,
    DiscountEffect,
    DiscountKind,
)

logger = logging.getLogger(__name__)


class CouponService(Protocol):
    """External coupon validator"""

    async def validate(self, code: str, cart: Cart) -> CouponValidation:
        ...


@dataclass
class CouponDefinition:
    """A coupon in the built-in catalog"""
    effect: DiscountEffect
    minimum_order: Decimal = Decimal("0.00")
    stackable: bool = True
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Compare in naive UTC; aware expiry times are converted first"""
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        if expires_at.tzinfo is not None:
            expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)
        return expires_at <= (now or datetime.utcnow())


DEFAULT_COUPONS: dict[str, CouponDefinition] = {
    "WELCOME10": CouponDefinition(
        effect=DiscountEffect(
            kind=DiscountKind.PERCENTAGE,
            value=Decimal("10"),
            max_amount=Decimal("100.00"),
        ),
    ),
    "HEALTH20": CouponDefinition(
        effect=DiscountEffect(
            kind=DiscountKind.PERCENTAGE,
            value=Decimal("20"),
            max_amount=Decimal("200.00"),
        ),
        minimum_order=Decimal("1000.00"),
        stackable=False,
    ),
    "FIRST15": CouponDefinition(
        effect=DiscountEffect(
            kind=DiscountKind.PERCENTAGE,
            value=Decimal("15"),
            max_amount=Decimal("150.00"),
        ),
    ),
}


class StaticCouponService:
    """Coupon validation against an in-process catalog"""

    def __init__(self, coupons: Optional[dict[str, CouponDefinition]] = None):
        self.coupons = dict(DEFAULT_COUPONS if coupons is None else coupons)

    async def validate(self, code: str, cart: Cart) -> CouponValidation:
        coupon = self.coupons.get(code)
        if not coupon:
            return CouponValidation(
                accepted=False,
                reason=CouponRejectionReason.NOT_FOUND,
                message=f"Coupon {code} does not exist",
            )

        if coupon.is_expired():
            return CouponValidation(
                accepted=False,
                reason=CouponRejectionReason.EXPIRED,
                message=f"Coupon {code} has expired",
            )

        if cart.total_price < coupon.minimum_order:
            return CouponValidation(
                accepted=False,
                reason=CouponRejectionReason.MINIMUM_NOT_MET,
                message=f"Coupon {code} needs an order of at least {coupon.minimum_order}",
            )

        if cart.applied_coupons and not coupon.stackable:
            return CouponValidation(
                accepted=False,
                reason=CouponRejectionReason.NOT_STACKABLE,
                message=f"Coupon {code} cannot be combined with other coupons",
            )

        other_exclusive = [
            c.code for c in cart.applied_coupons
            if c.code in self.coupons and not self.coupons[c.code].stackable
        ]
        if other_exclusive:
            return CouponValidation(
                accepted=False,
                reason=CouponRejectionReason.NOT_STACKABLE,
                message=f"Coupon {other_exclusive[0]} cannot be combined with other coupons",
            )

        return CouponValidation(accepted=True, discount_effect=coupon.effect)


class HttpCouponService:
    """
    Client for a remote coupon validation API.

    POSTs `{code, cart}` to `{base_url}/coupons/validate` and expects a
    `CouponValidation` JSON document back.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize coupon client.

        Args:
            base_url: Base URL of the coupon API
            timeout: Request timeout in seconds
            http_client: Pre-built client, mainly for tests
        """
        self.base_url = base_url.rstrip("/")
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Close HTTP client"""
        await self._http_client.aclose()

    async def validate(self, code: str, cart: Cart) -> CouponValidation:
        url = f"{self.base_url}/coupons/validate"
        body = {"code": code, "cart": cart.model_dump(mode="json")}

        try:
            response = await self._http_client.post(url, json=body)
        except httpx.HTTPError as e:
            logger.error(f"Coupon service request failed: {e}")
            raise ExternalServiceUnavailable("Coupon service unavailable") from e

        if response.status_code == 404:
            return CouponValidation(
                accepted=False,
                reason=CouponRejectionReason.NOT_FOUND,
                message=f"Coupon {code} does not exist",
            )

        if response.status_code >= 400:
            logger.error(f"Coupon service error: {response.status_code} - {response.text}")
            raise ExternalServiceUnavailable(
                f"Coupon service returned {response.status_code}"
            )

        try:
            validation = CouponValidation.model_validate(response.json())
        except ValueError as e:
            logger.error(f"Malformed coupon service response: {e}")
            raise ExternalServiceUnavailable("Coupon service sent a malformed response") from e

        if validation.accepted and validation.discount_effect is None:
            raise ExternalServiceUnavailable("Coupon service accepted a code without an effect")

        return validation


class CouponResolver:
    """Turns coupon codes into outcomes the cart controller can commit"""

    def __init__(self, coupon_service: CouponService):
        self.coupon_service = coupon_service

    @staticmethod
    def normalize(code: str) -> str:
        """Trim and case-fold a code to its canonical upper-case form"""
        return code.strip().casefold().upper()

    async def resolve(self, code: str, cart: Optional[Cart]) -> CouponOutcome:
        """
        Check a code against the cart and the coupon service.

        Already-applied codes and empty carts are rejected without a
        service call. Service failures propagate as
        ExternalServiceUnavailable.
        """
        normalized = self.normalize(code)

        if not normalized:
            return CouponOutcome(
                accepted=False,
                code=normalized,
                reason=CouponRejectionReason.NOT_FOUND,
                message="Coupon code is empty",
            )

        if cart is not None and normalized in cart.coupon_codes:
            return CouponOutcome(
                accepted=False,
                code=normalized,
                reason=CouponRejectionReason.ALREADY_APPLIED,
                message=f"Coupon {normalized} is already applied",
            )

        if cart is None or not cart.items:
            return CouponOutcome(
                accepted=False,
                code=normalized,
                reason=CouponRejectionReason.CART_EMPTY,
                message="Coupons need a cart with items",
            )

        validation = await self.coupon_service.validate(normalized, cart)

        if not validation.accepted:
            return CouponOutcome(
                accepted=False,
                code=normalized,
                reason=validation.reason or CouponRejectionReason.NOT_FOUND,
                message=validation.message or f"Coupon {normalized} was rejected",
            )

        return CouponOutcome(accepted=True, code=normalized, effect=validation.discount_effect)

    @staticmethod
    def with_coupon(applied: list[AppliedCoupon], outcome: CouponOutcome) -> list[AppliedCoupon]:
        """Applied coupons after accepting an outcome; codes stay unique"""
        if any(coupon.code == outcome.code for coupon in applied):
            return list(applied)
        return [*applied, AppliedCoupon(code=outcome.code, effect=outcome.effect)]

    @classmethod
    def without_coupon(cls, applied: list[AppliedCoupon], code: str) -> list[AppliedCoupon]:
        """Applied coupons with a code removed; removing an absent code is a no-op"""
        normalized = cls.normalize(code)
        return [coupon for coupon in applied if coupon.code != normalized]
