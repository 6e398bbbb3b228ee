"""
Checkout Service
Order creation, payment verification, cancellation and stale order cleanup

Flow:
1. create_order: price the stored cart, reserve stock and insert the order
   in one transaction, then open a Razorpay order for the total
2. verify_payment: check the Razorpay signature, mark the order paid,
   clear the cart and send the confirmation e-mail
3. cancel_order / cleanup_stale_orders: pending -> cancelled, stock
   released, coupon redemption given back
4. refund_order: Razorpay refund of a paid order, payment_status -> refunded
"""
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from storefront.core.auth import TokenUser
from storefront.core.config import settings
from storefront.core.errors import CheckoutError, ForbiddenError, NotFoundError, PaymentError, RateLimitedError
from storefront.connectors.razorpay_connector import RazorpayConnector, RazorpayError
from storefront.domain.order import (
    CheckoutSession,
    CreateOrderRequest,
    Order,
    OrderItem,
    PaymentStatus,
    TransactionStatus,
    VerifyPaymentRequest,
)
from storefront.repositories.cart_repository import CartRepository
from storefront.repositories.coupon_repository import CouponRepository
from storefront.repositories.order_repository import InventoryReservationError, OrderRepository
from storefront.repositories.reward_repository import RewardRepository
from storefront.services import pricing_service
from storefront.services.coupon_service import CouponService
from storefront.services.email_service import EmailService
from storefront.services.shipping_service import ShippingService

logger = logging.getLogger(__name__)


def generate_order_number(now: datetime) -> str:
    """ORD-<epoch milliseconds>"""
    return f"ORD-{int(now.timestamp() * 1000)}"


class CheckoutService:
    """
    Service for the checkout / order lifecycle

    Handles:
    - Pending-order rate limit per user
    - Server-side pricing of the stored cart (coupon included)
    - Stock reservation and order insert (single transaction)
    - Razorpay order creation and signature verification
    - Cancellation and stale order cleanup with stock release
    - Admin refunds
    """

    def __init__(
        self,
        order_repository: Optional[OrderRepository] = None,
        cart_repository: Optional[CartRepository] = None,
        coupon_repository: Optional[CouponRepository] = None,
        reward_repository: Optional[RewardRepository] = None,
        coupon_service: Optional[CouponService] = None,
        shipping_service: Optional[ShippingService] = None,
        email_service: Optional[EmailService] = None,
        razorpay: Optional[RazorpayConnector] = None
    ):
        self.order_repository = order_repository or OrderRepository()
        self.cart_repository = cart_repository or CartRepository()
        self.coupon_repository = coupon_repository or CouponRepository()
        self.reward_repository = reward_repository or RewardRepository()
        self.coupon_service = coupon_service or CouponService(repository=self.coupon_repository)
        self.shipping_service = shipping_service or ShippingService()
        self.email_service = email_service or EmailService()
        self.razorpay = razorpay or RazorpayConnector()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _check_pending_limit(self, user_id: str, now: datetime):
        since = now - timedelta(minutes=settings.PENDING_ORDER_WINDOW_MINUTES)
        pending = self.order_repository.count_pending_since(user_id, since)
        if pending >= settings.MAX_PENDING_ORDERS:
            logger.warning(f"Pending order limit hit: user={user_id} pending={pending}")
            raise RateLimitedError(
                "Too many pending orders. Please complete or wait before placing another order.",
                code="checkout.too_many_pending",
            )

    async def create_order(self, user: TokenUser, request: CreateOrderRequest,
                           now: Optional[datetime] = None) -> CheckoutSession:
        """
        Create a pending order from the user's cart and open a Razorpay order

        Raises:
            RateLimitedError: too many pending orders in the window
            CheckoutError: empty cart, zero total, stock unavailable
            CouponError: promo code not usable on this cart, or used up meanwhile
            PaymentError: gateway unavailable (order is cancelled)
        """
        now = now or datetime.now(timezone.utc)

        self._check_pending_limit(user.id, now)

        items = self.cart_repository.find_by_user(user.id)
        if not items:
            raise CheckoutError("Your cart is empty", code="checkout.empty_cart")

        shipping = self.shipping_service.get_settings()
        if request.coupon_code:
            _, quote = self.coupon_service.apply(request.coupon_code, items, shipping, email=user.email, now=now)
        else:
            quote = pricing_service.quote(items, shipping)

        if quote.total <= 0:
            raise CheckoutError(
                "Order total must be greater than zero to pay online.",
                code="checkout.zero_total",
            )

        order_items = [
            OrderItem(
                product_id=item.product.id,
                variant_id=item.variant.id if item.variant else None,
                quantity=item.quantity,
                price=item.unit_price,
                product_name=item.product.name,
                variant_name=item.variant.variant_name if item.variant else None,
            )
            for item in items
        ]

        try:
            order = self.order_repository.create_pending(
                {
                    'user_id': user.id,
                    'order_number': generate_order_number(now),
                    'total_amount': quote.total,
                    'subtotal': quote.subtotal,
                    'shipping_amount': quote.shipping,
                    'discount_amount': quote.discount,
                    'coupon_code': quote.coupon_code,
                    'currency': settings.CURRENCY,
                    'shipping_address': request.shipping_address.model_dump(),
                },
                order_items,
                coupon_repository=self.coupon_repository,
            )
        except InventoryReservationError as e:
            logger.warning(f"Inventory reservation failed for user {user.id}: {e}")
            raise CheckoutError(
                "Some items in your cart are no longer available.",
                code="checkout.out_of_stock",
            )

        logger.info(f"Order {order.order_number} created for user {user.id}: total={quote.total}")

        try:
            gateway_order = await self.razorpay.create_order(
                quote.amount_in_paise,
                receipt=order.order_number,
                currency=order.currency,
                notes={"order_id": order.id, "user_id": user.id},
            )
        except RazorpayError as e:
            logger.error(f"Razorpay order failed for {order.order_number}: {e}")
            self._cancel(order)
            raise PaymentError(
                "Payment service temporarily unavailable. Please try again.",
                code="payment.gateway_unavailable",
            )

        self.order_repository.set_razorpay_order(order.id, gateway_order['id'])
        self.order_repository.create_transaction(order.id, gateway_order['id'], quote.total, order.currency)

        return CheckoutSession(
            order_id=order.id,
            order_number=order.order_number,
            razorpay_order_id=gateway_order['id'],
            amount=quote.amount_in_paise,
            currency=order.currency,
            key_id=self.razorpay.key_id,
        )

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    async def verify_payment(self, user: TokenUser, request: VerifyPaymentRequest) -> Order:
        """
        Confirm a Razorpay payment for one of the user's orders

        Raises:
            NotFoundError: order doesn't exist or isn't the user's
            CheckoutError: signature mismatch
        """
        order = self.order_repository.find_by_id(request.order_id, user_id=user.id)
        if order is None:
            raise NotFoundError("Order not found", code="order.not_found")

        if order.payment_status == PaymentStatus.SUCCESS:
            return order

        if order.razorpay_order_id and order.razorpay_order_id != request.razorpay_order_id:
            logger.warning(f"Razorpay order mismatch for {order.order_number}: {request.razorpay_order_id}")
            raise CheckoutError("Payment does not match this order", code="payment.order_mismatch")

        if not self.razorpay.verify_signature(
            request.razorpay_order_id, request.razorpay_payment_id, request.razorpay_signature
        ):
            logger.warning(f"Invalid payment signature for order {order.order_number}")
            self.order_repository.update_transactions(
                TransactionStatus.FAILED.value,
                razorpay_order_id=request.razorpay_order_id,
                razorpay_payment_id=request.razorpay_payment_id,
            )
            raise CheckoutError(
                "Payment could not be verified. If money was deducted, please contact support.",
                code="payment.invalid_signature",
            )

        if not order.is_pending:
            logger.warning(f"Payment verified for non-pending order {order.order_number} ({order.status.value})")

        self.order_repository.update_transactions(
            TransactionStatus.SUCCESS.value,
            razorpay_order_id=request.razorpay_order_id,
            razorpay_payment_id=request.razorpay_payment_id,
            razorpay_signature=request.razorpay_signature,
        )
        self.order_repository.mark_paid(order.id, user.id, request.razorpay_payment_id)
        logger.info(f"Payment verified for order {order.order_number}")

        try:
            self.cart_repository.clear(user.id)
        except Exception as e:
            logger.error(f"Failed to clear cart of user {user.id} after order {order.order_number}: {e}")

        if order.coupon_code:
            try:
                self.reward_repository.mark_used(user.id, order.coupon_code)
            except Exception as e:
                logger.error(f"Failed to mark reward {order.coupon_code} used for user {user.id}: {e}")

        paid = self.order_repository.find_by_id(order.id) or order
        await self.email_service.send_order_email(paid, email=user.email)
        return paid

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    def _cancel(self, order: Order) -> bool:
        """
        pending -> cancelled, release stock, fail transactions, restore coupon

        Returns:
            False when the order was no longer pending
        """
        if not self.order_repository.mark_cancelled(order.id):
            return False

        try:
            self.order_repository.release_inventory(order.items)
        except Exception as e:
            logger.error(f"Failed to release inventory for order {order.order_number}: {e}")

        try:
            self.order_repository.update_transactions(TransactionStatus.FAILED.value, order_id=order.id)
        except Exception as e:
            logger.error(f"Failed to update transactions for order {order.order_number}: {e}")

        self.coupon_service.restore_usage(order.coupon_code)
        logger.info(f"Order {order.order_number} cancelled")
        return True

    def cancel_order(self, user: TokenUser, order_id: str) -> Dict[str, Any]:
        """
        Shopper cancels a pending order (payment dismissed / failed)

        Non-pending orders are left untouched and reported as processed.
        """
        order = self.order_repository.find_by_id(order_id)
        if order is None:
            raise NotFoundError("Order not found", code="order.not_found")
        if order.user_id != user.id:
            raise ForbiddenError("You can only cancel your own orders", code="order.forbidden")

        if not order.is_pending or not self._cancel(order):
            return {"order_id": order.id, "cancelled": False, "message": "Order already processed"}

        return {"order_id": order.id, "cancelled": True, "message": "Order cancelled"}

    def cleanup_stale_orders(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Cancel pending orders older than STALE_ORDER_HOURS

        Each order is handled on its own; one failure doesn't stop the rest.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(hours=settings.STALE_ORDER_HOURS)
        stale_orders = self.order_repository.find_stale_pending(cutoff)
        logger.info(f"Stale order cleanup: {len(stale_orders)} pending orders before {cutoff.isoformat()}")

        results = []
        for order in stale_orders:
            try:
                cancelled = self._cancel(order)
                results.append({
                    'id': order.id,
                    'order_number': order.order_number,
                    'status': 'cancelled' if cancelled else 'skipped',
                })
            except Exception as e:
                logger.error(f"Failed to cancel stale order {order.order_number}: {e}")
                results.append({
                    'id': order.id,
                    'order_number': order.order_number,
                    'status': 'error',
                    'error': str(e),
                })

        return results

    # ------------------------------------------------------------------
    # Refund
    # ------------------------------------------------------------------

    async def refund_order(self, order_id: str, amount: Optional[Decimal] = None) -> Dict[str, Any]:
        """
        Refund a paid order through Razorpay (admin)

        The fulfilment status is left as is; payment_status becomes refunded,
        the order's transactions are marked refunded and the coupon
        redemption is given back.

        Args:
            order_id: Order to refund
            amount: Rupees to refund; the whole order total when omitted

        Raises:
            NotFoundError: order doesn't exist
            CheckoutError: order not paid, or amount above the order total
            PaymentError: Razorpay refused or is unreachable
        """
        order = self.order_repository.find_by_id(order_id)
        if order is None:
            raise NotFoundError("Order not found", code="order.not_found")

        if order.payment_status != PaymentStatus.SUCCESS or not order.razorpay_payment_id:
            raise CheckoutError("Only paid orders can be refunded", code="refund.not_paid")

        amount = order.total_amount if amount is None else amount
        if amount <= 0 or amount > order.total_amount:
            raise CheckoutError(
                f"Refund amount must be between 0 and {order.total_amount}",
                code="refund.invalid_amount",
            )

        try:
            refund = await self.razorpay.refund(
                order.razorpay_payment_id,
                amount_paise=int(amount * 100),
                notes={"order_id": order.id, "order_number": order.order_number},
            )
        except RazorpayError as e:
            logger.error(f"Refund failed for order {order.order_number}: {e}")
            raise PaymentError("Refund could not be processed. Please try again.", code="payment.refund_failed")

        logger.info(f"Order {order.order_number} refunded: {amount} ({refund['id']})")

        try:
            self.order_repository.update_transactions(TransactionStatus.REFUNDED.value, order_id=order.id)
        except Exception as e:
            logger.error(f"Failed to mark transactions refunded for order {order.order_number}: {e}")

        updated = self.order_repository.update_status(
            order.id, order.status.value, payment_status=PaymentStatus.REFUNDED.value
        )
        self.coupon_service.restore_usage(order.coupon_code)

        return {
            'order': (updated or order).to_dict(),
            'refund_id': refund['id'],
            'amount': float(amount),
        }
