"""
Cart Service
The signed-in shopper's cart and its live price quote
"""
import logging
from typing import Any, Dict, Optional

from storefront.core.errors import CouponError, NotFoundError, ValidationError
from storefront.domain.cart import BundleAdd, CartItemAdd
from storefront.repositories.cart_repository import CartRepository
from storefront.repositories.product_repository import ProductRepository
from storefront.services import pricing_service
from storefront.services.coupon_service import CouponService, describe_coupon
from storefront.services.shipping_service import ShippingService

logger = logging.getLogger(__name__)


class CartService:
    """
    Service for cart operations

    Handles:
    - Cart listing with pricing (and an optional promo code)
    - Stock-checked adds (standalone upsert, bundle insert)
    - Quantity updates and removals
    """

    def __init__(
        self,
        cart_repository: Optional[CartRepository] = None,
        product_repository: Optional[ProductRepository] = None,
        coupon_service: Optional[CouponService] = None,
        shipping_service: Optional[ShippingService] = None
    ):
        self.cart_repository = cart_repository or CartRepository()
        self.product_repository = product_repository or ProductRepository()
        self.coupon_service = coupon_service or CouponService()
        self.shipping_service = shipping_service or ShippingService()

    def get_cart(self, user_id: str, email: Optional[str] = None, coupon_code: Optional[str] = None) -> Dict[str, Any]:
        """
        Cart lines plus quote

        An invalid promo code doesn't fail the request: the cart is priced
        without it and the reason is returned in coupon_error.
        """
        items = self.cart_repository.find_by_user(user_id)
        shipping = self.shipping_service.get_settings()

        coupon = None
        coupon_error = None
        if coupon_code and items:
            try:
                coupon, quote = self.coupon_service.apply(coupon_code, items, shipping, email=email)
            except CouponError as e:
                coupon_error = e.to_dict()
                quote = pricing_service.quote(items, shipping)
        else:
            quote = pricing_service.quote(items, shipping)

        return {
            'items': [item.to_dict() for item in items],
            'quote': quote.to_dict(),
            'coupon': coupon.to_dict() if coupon else None,
            'coupon_error': coupon_error,
            'shipping_settings': shipping.to_dict(),
            'has_out_of_stock_items': any(item.available_stock < item.quantity for item in items),
        }

    def apply_coupon(self, user_id: str, code: str, email: Optional[str] = None) -> Dict[str, Any]:
        """
        Explicit "Apply" on a promo code; unlike get_cart the failure is raised

        Raises:
            CouponError: empty cart or ineligible code
        """
        items = self.cart_repository.find_by_user(user_id)
        if not items:
            raise CouponError("Your cart is empty", code="coupon.empty_cart")

        coupon, quote = self.coupon_service.apply(code, items, self.shipping_service.get_settings(), email=email)
        return {
            'coupon': coupon.to_dict(),
            'quote': quote.to_dict(),
            'message': describe_coupon(coupon),
        }

    def _check_stock(self, product_id: str, variant_id: Optional[str], quantity: int):
        stock = self.product_repository.get_stock(product_id, variant_id)
        if stock is None:
            raise NotFoundError(
                "Variant not found" if variant_id else "Product not found",
                code="cart.item_not_found",
            )
        if stock < quantity:
            raise ValidationError(
                f"Only {stock} units available",
                code="cart.insufficient_stock",
                meta={"available": stock},
            )

    def add_item(self, user_id: str, data: CartItemAdd) -> str:
        """
        Add a product (or variant) to the cart

        Standalone lines replace the quantity of the existing line for the
        same product/variant; bundle lines are always inserted.

        Returns:
            cart line id
        """
        self._check_stock(data.product_id, data.variant_id, data.quantity)

        if data.bundle_id:
            line_id = self.cart_repository.insert_bundle_item(
                user_id, data.product_id, data.variant_id, data.bundle_id, data.quantity
            )
        else:
            line_id = self.cart_repository.upsert_standalone(
                user_id, data.product_id, data.variant_id, data.quantity
            )

        logger.info(f"Cart add: user={user_id} product={data.product_id} qty={data.quantity}")
        return line_id

    def add_bundle(self, user_id: str, bundle_id: str, data: BundleAdd) -> int:
        """Add every member with a product; members already present are incremented"""
        members = [
            {'product_id': m.product_id, 'variant_id': m.variant_id, 'quantity': m.quantity}
            for m in data.items if m.product_id
        ]
        if not members:
            raise ValidationError("No valid items in this bundle", code="cart.empty_bundle")

        return self.cart_repository.add_bundle(user_id, bundle_id, members)

    def update_quantity(self, user_id: str, item_id: str, quantity: int):
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1", code="cart.invalid_quantity")
        if not self.cart_repository.update_quantity(user_id, item_id, quantity):
            raise NotFoundError("Cart item not found", code="cart.item_not_found")

    def remove_item(self, user_id: str, item_id: str):
        if not self.cart_repository.remove(user_id, item_id):
            raise NotFoundError("Cart item not found", code="cart.item_not_found")

    def clear(self, user_id: str) -> int:
        return self.cart_repository.clear(user_id)
