"""
API tests for shopper-facing endpoints

Services are replaced through FastAPI dependency overrides.
"""
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from storefront.api import cart, checkout, coupons, products
from storefront.core.errors import CheckoutError, CouponError
from storefront.domain.order import CheckoutSession
from storefront.domain.product import Product


ADDRESS = {"address_line_1": "12 MG Road", "city": "Bengaluru", "pincode": "560001"}


class TestProductsAPI:

    def test_list_products(self, client, override):
        repo = override(products.get_product_repository, MagicMock())
        repo.find_all.return_value = (
            [Product(id="p1", name="Classic Mug", base_price=Decimal('499'), discount_price=Decimal('399'))],
            1,
        )

        response = client.get("/api/v1/products/?search=mug&limit=10")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["data"][0]["effective_price"] == 399.0
        repo.find_all.assert_called_once_with(category_id=None, search="mug", limit=10, offset=0)

    def test_limit_is_bounded(self, client, override):
        override(products.get_product_repository, MagicMock())

        response = client.get("/api/v1/products/?limit=1000")

        assert response.status_code == 422

    def test_product_not_found(self, client, override):
        repo = override(products.get_product_repository, MagicMock())
        repo.find_by_id.return_value = None

        response = client.get("/api/v1/products/nope")

        assert response.status_code == 404


class TestCartAPI:

    def test_requires_authentication(self, client):
        response = client.get("/api/v1/cart/")

        assert response.status_code == 401
        assert response.json()["detail"] == "Authentication required"

    def test_get_cart_with_coupon(self, as_shopper, override):
        service = override(cart.get_cart_service, MagicMock())
        service.get_cart.return_value = {"items": [], "quote": {"total": 0}}

        response = as_shopper.get("/api/v1/cart/?coupon_code=SAVE10")

        assert response.status_code == 200
        service.get_cart.assert_called_once_with("user-1", email="shopper@example.com", coupon_code="SAVE10")

    def test_add_item(self, as_shopper, override):
        service = override(cart.get_cart_service, MagicMock())
        service.add_item.return_value = "line-1"

        response = as_shopper.post("/api/v1/cart/items", json={"product_id": "p1", "quantity": 2})

        assert response.status_code == 201
        assert response.json()["message"] == "Item added to cart"
        assert response.json()["data"] == {"id": "line-1"}

    def test_unexpected_error_is_500(self, as_shopper, override):
        service = override(cart.get_cart_service, MagicMock())
        service.get_cart.side_effect = Exception("db down")

        response = as_shopper.get("/api/v1/cart/")

        assert response.status_code == 500
        assert response.json()["detail"] == "Error fetching cart"


class TestCouponsAPI:

    def test_ineligible_coupon_maps_to_400(self, as_shopper, override):
        service = override(coupons.get_cart_service, MagicMock())
        service.apply_coupon.side_effect = CouponError(
            "Minimum order value is ₹500", code="coupon.min_order_not_met", meta={"min_order_value": 500.0}
        )

        response = as_shopper.post("/api/v1/coupons/apply", json={"code": "SAVE10"})

        assert response.status_code == 400
        assert response.json() == {
            "detail": "Minimum order value is ₹500",
            "code": "coupon.min_order_not_met",
            "meta": {"min_order_value": 500.0},
        }

    def test_promotions_are_public(self, client, override, make_coupon):
        service = override(coupons.get_coupon_service, MagicMock())
        service.list_public_promotions.return_value = [make_coupon(description="10% off everything")]

        response = client.get("/api/v1/coupons/promotions")

        assert response.status_code == 200
        assert response.json()["data"][0] == {
            "code": "SAVE10",
            "description": "10% off everything",
            "value_label": "10% OFF",
            "min_order_value": 0.0,
            "valid_until": None,
        }


class TestCheckoutAPI:

    def test_create_order(self, as_shopper, override):
        service = override(checkout.get_checkout_service, MagicMock())
        service.create_order = AsyncMock(return_value=CheckoutSession(
            order_id="order-1", order_number="ORD-1", razorpay_order_id="order_RZP123",
            amount=54900, currency="INR", key_id="rzp_test_key",
        ))

        response = as_shopper.post("/api/v1/checkout/orders", json={"shipping_address": ADDRESS})

        assert response.status_code == 201
        assert response.json()["data"]["amount"] == 54900
        request = service.create_order.call_args[0][1]
        assert request.shipping_address.pincode == "560001"

    def test_invalid_address_rejected_before_service(self, as_shopper, override):
        service = override(checkout.get_checkout_service, MagicMock())

        response = as_shopper.post(
            "/api/v1/checkout/orders", json={"shipping_address": {**ADDRESS, "pincode": "12"}}
        )

        assert response.status_code == 422
        service.create_order.assert_not_called()

    def test_checkout_error_payload(self, as_shopper, override):
        service = override(checkout.get_checkout_service, MagicMock())
        service.create_order = AsyncMock(side_effect=CheckoutError(
            "Some items in your cart are no longer available.", code="checkout.out_of_stock"
        ))

        response = as_shopper.post("/api/v1/checkout/orders", json={"shipping_address": ADDRESS})

        assert response.status_code == 400
        assert response.json()["code"] == "checkout.out_of_stock"

    def test_validate_address(self, client):
        response = client.post("/api/v1/checkout/validate-address", json={**ADDRESS, "city": "B"})

        assert response.status_code == 422
        assert response.json()["code"] == "address.invalid"

    def test_checkout_rate_limited(self, client, override):
        service = override(checkout.get_address_service, MagicMock())
        service.lookup_pincode.return_value = {"pincode": "560001", "valid": True}

        statuses = [client.get("/api/v1/checkout/pincode/560001").status_code for _ in range(21)]

        assert statuses[:20] == [200] * 20
        assert statuses[20] == 429


class TestHealth:

    def test_degraded_without_database(self, client):
        with patch('storefront.main.get_db_connection_with_retry', side_effect=Exception("no db")):
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["database"]["error"] == "no db"
