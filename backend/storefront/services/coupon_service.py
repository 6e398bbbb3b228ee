"""
Coupon Service
Coupon eligibility, administration, smart coupons and public promotions

Eligibility is checked in a fixed order and every failure carries a
stable code:

    coupon.not_found -> coupon.inactive -> coupon.not_started ->
    coupon.expired -> coupon.usage_limit_reached ->
    coupon.email_not_allowed -> coupon.min_order_not_met ->
    coupon.not_applicable
"""
import logging
import secrets
import string
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from storefront.core.config import settings
from storefront.core.errors import ConflictError, CouponError, NotFoundError, ValidationError
from storefront.domain.cart import CartItem
from storefront.domain.coupon import Coupon, CouponCreate, CouponUpdate, DiscountType, SmartCouponRequest
from storefront.domain.pricing import PriceQuote, ShippingSettings
from storefront.repositories.coupon_repository import CouponRepository
from storefront.repositories.user_repository import UserRepository
from storefront.services import pricing_service

logger = logging.getLogger(__name__)


SMART_CODE_ALPHABET = string.ascii_uppercase + string.digits
SMART_CODE_LENGTH = 5
SMART_CODE_ATTEMPTS = 5


def check_coupon(
    coupon: Optional[Coupon],
    subtotal: Decimal,
    eligible_amount: Decimal,
    email: Optional[str] = None,
    now: Optional[datetime] = None
) -> Coupon:
    """
    Raise CouponError when the coupon can't be used on this cart

    Args:
        coupon: coupon looked up by code (None when the code is unknown)
        subtotal: cart subtotal
        eligible_amount: subtotal of lines the coupon applies to
        email: shopper's e-mail
        now: evaluation time (defaults to current UTC time)

    Returns:
        The coupon, when it is usable
    """
    now = now or datetime.now(timezone.utc)

    if coupon is None:
        raise CouponError("Invalid promo code", code="coupon.not_found")

    if not coupon.is_active:
        raise CouponError("This promo code is no longer active", code="coupon.inactive")

    if not coupon.is_started(now):
        raise CouponError("This promo code is not active yet", code="coupon.not_started")

    if coupon.is_expired(now):
        raise CouponError("This promo code has expired.", code="coupon.expired")

    if coupon.is_exhausted:
        raise CouponError("This promo code has reached its usage limit", code="coupon.usage_limit_reached")

    if not coupon.allows_email(email):
        raise CouponError("This promo code is not valid for your account", code="coupon.email_not_allowed")

    if subtotal < coupon.min_order_value:
        raise CouponError(
            f"Minimum order value is ₹{coupon.min_order_value.normalize():f}",
            code="coupon.min_order_not_met",
            meta={"min_order_value": float(coupon.min_order_value)},
        )

    if coupon.is_restricted and eligible_amount <= 0:
        raise CouponError(
            "This promo code does not apply to any items in your cart",
            code="coupon.not_applicable",
        )

    return coupon


def generate_smart_code(prefix: str) -> str:
    """PREFIX-XXXXX with 5 random upper-case base-36 characters"""
    suffix = "".join(secrets.choice(SMART_CODE_ALPHABET) for _ in range(SMART_CODE_LENGTH))
    return f"{prefix.strip().upper()}-{suffix}"


class CouponService:
    """
    Service for coupon rules

    Handles:
    - Applying a code to a cart (eligibility + quote)
    - Admin CRUD
    - Smart (single-use, targeted) coupon generation
    - Public promotions listing
    - Usage restore when an order is cancelled
    """

    def __init__(
        self,
        repository: Optional[CouponRepository] = None,
        user_repository: Optional[UserRepository] = None
    ):
        self.repository = repository or CouponRepository()
        self.user_repository = user_repository or UserRepository()

    def apply(
        self,
        code: str,
        items: List[CartItem],
        shipping: ShippingSettings,
        email: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Tuple[Coupon, PriceQuote]:
        """
        Validate a code against a cart and price the cart with it

        Raises:
            CouponError: with the eligibility failure code
        """
        coupon = self.repository.find_by_code(code)
        subtotal, _ = pricing_service.compute_subtotal(items)
        eligible = pricing_service.compute_eligible_amount(items, subtotal, coupon)

        check_coupon(coupon, subtotal, eligible, email=email, now=now)
        return coupon, pricing_service.quote(items, shipping, coupon)

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def list_coupons(self, is_active: Optional[bool] = None, limit: int = 100, offset: int = 0) -> List[Coupon]:
        return self.repository.find_all(is_active=is_active, limit=limit, offset=offset)

    def get_coupon(self, coupon_id: str) -> Coupon:
        coupon = self.repository.find_by_id(coupon_id)
        if coupon is None:
            raise NotFoundError("Coupon not found", code="coupon.not_found")
        return coupon

    def create_coupon(self, data: CouponCreate) -> Coupon:
        if self.repository.code_exists(data.code):
            raise ConflictError(f"Coupon code {data.code} already exists", code="coupon.duplicate_code")

        coupon = self.repository.create(data.model_dump())
        logger.info(f"Coupon created: {coupon.code} ({coupon.discount_type.value} {coupon.discount_value})")
        return coupon

    def update_coupon(self, coupon_id: str, data: CouponUpdate) -> Coupon:
        current = self.get_coupon(coupon_id)
        changes = data.model_dump(exclude_unset=True)

        # Re-validate the merged coupon with the create rules
        merged = current.model_dump(include=set(CouponCreate.model_fields.keys()))
        merged.update(changes)
        try:
            validated = CouponCreate(**merged)
        except ValueError as e:
            raise ValidationError(str(e), code="coupon.invalid_payload")
        changes = {field: getattr(validated, field) for field in changes}

        updated = self.repository.update(coupon_id, changes)
        if updated is None:
            raise NotFoundError("Coupon not found", code="coupon.not_found")
        return updated

    def delete_coupon(self, coupon_id: str):
        if not self.repository.delete(coupon_id):
            raise NotFoundError("Coupon not found", code="coupon.not_found")
        logger.info(f"Coupon deleted: {coupon_id}")

    def generate_smart_coupon(self, request: SmartCouponRequest, now: Optional[datetime] = None) -> Coupon:
        """
        Create a single-use coupon, optionally locked to one shopper

        The target e-mail comes from the request, or from the profile of
        request.user_id.
        """
        now = now or datetime.now(timezone.utc)

        target_email = request.email
        if not target_email and request.user_id:
            target_email = self.user_repository.find_email(request.user_id)
            if not target_email:
                logger.warning(f"Smart coupon: no profile e-mail for user {request.user_id}")

        prefix = request.prefix or settings.SMART_COUPON_PREFIX
        valid_days = request.valid_days or settings.SMART_COUPON_VALID_DAYS

        code = generate_smart_code(prefix)
        attempts = 1
        while self.repository.code_exists(code):
            if attempts >= SMART_CODE_ATTEMPTS:
                raise ConflictError("Could not generate a unique coupon code", code="coupon.code_exhausted")
            code = generate_smart_code(prefix)
            attempts += 1

        coupon = self.repository.create({
            'code': code,
            'description': f"Special Offer for {target_email or 'You'}",
            'discount_type': request.discount_type,
            'discount_value': request.discount_value,
            'min_order_value': request.min_order_value,
            'usage_limit': 1,
            'is_active': True,
            'valid_until': now + timedelta(days=valid_days),
            'allowed_emails': [target_email.strip().lower()] if target_email else None,
            'restricted_products': request.restricted_products or None,
            'restricted_categories': request.restricted_categories or None,
        })
        logger.info(f"Smart coupon generated: {coupon.code} for {target_email or 'anyone'}")
        return coupon

    # ------------------------------------------------------------------
    # Shoppers
    # ------------------------------------------------------------------

    def list_public_promotions(self, now: Optional[datetime] = None) -> List[Coupon]:
        """Active, unexpired coupons with no e-mail restriction"""
        now = now or datetime.now(timezone.utc)
        return [
            coupon for coupon in self.repository.find_public()
            if not coupon.allowed_emails and coupon.is_started(now) and not coupon.is_expired(now)
        ]

    def restore_usage(self, code: Optional[str]):
        """Give back a redemption; failures are logged, not raised"""
        if not code:
            return
        try:
            self.repository.restore_usage(code)
        except Exception as e:
            logger.error(f"Failed to restore usage for coupon {code}: {e}")


def describe_coupon(coupon: Coupon) -> str:
    """Toast text shown after a code is applied"""
    if coupon.discount_type == DiscountType.FREE_SHIPPING:
        return "Free shipping applied."
    return f"{coupon.value_label.replace(' OFF', '')} discount applied."
