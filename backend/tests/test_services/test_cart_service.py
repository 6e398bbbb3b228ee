"""
Unit tests for CartService
"""
import pytest
from decimal import Decimal
from unittest.mock import MagicMock

from storefront.core.errors import CouponError, NotFoundError, ValidationError
from storefront.domain.cart import BundleAdd, CartItemAdd
from storefront.services import pricing_service
from storefront.services.cart_service import CartService


@pytest.fixture
def deps(shipping):
    shipping_service = MagicMock()
    shipping_service.get_settings.return_value = shipping
    return {
        "cart_repository": MagicMock(),
        "product_repository": MagicMock(),
        "coupon_service": MagicMock(),
        "shipping_service": shipping_service,
    }


@pytest.fixture
def service(deps):
    return CartService(**deps)


class TestGetCart:

    def test_quote_without_coupon(self, service, deps, make_item):
        deps["cart_repository"].find_by_user.return_value = [make_item(price=200, quantity=2)]

        cart = service.get_cart("user-1")

        assert cart["quote"]["subtotal"] == 400.0
        assert cart["quote"]["shipping"] == 50.0
        assert cart["quote"]["total"] == 450.0
        assert cart["coupon"] is None
        assert cart["coupon_error"] is None
        assert cart["shipping_settings"] == {"shipping_cost": 50.0, "free_shipping_threshold": 499.0}
        assert cart["has_out_of_stock_items"] is False
        deps["coupon_service"].apply.assert_not_called()

    def test_invalid_coupon_reported_not_raised(self, service, deps, make_item):
        deps["cart_repository"].find_by_user.return_value = [make_item(price=200)]
        deps["coupon_service"].apply.side_effect = CouponError("This promo code has expired.", code="coupon.expired")

        cart = service.get_cart("user-1", email="a@b.com", coupon_code="OLD")

        assert cart["coupon_error"] == {"detail": "This promo code has expired.", "code": "coupon.expired"}
        assert cart["quote"]["discount"] == 0.0
        assert cart["quote"]["total"] == 250.0

    def test_valid_coupon_applied(self, service, deps, make_item, make_coupon, shipping):
        items = [make_item(price=1000)]
        coupon = make_coupon(discount_value=10)
        deps["cart_repository"].find_by_user.return_value = items
        deps["coupon_service"].apply.return_value = (coupon, pricing_service.quote(items, shipping, coupon))

        cart = service.get_cart("user-1", coupon_code="SAVE10")

        assert cart["coupon"]["code"] == "SAVE10"
        assert cart["quote"]["discount"] == 100.0
        assert cart["quote"]["total"] == 900.0

    def test_flags_out_of_stock_lines(self, service, deps, make_item):
        deps["cart_repository"].find_by_user.return_value = [make_item(quantity=3, stock=2)]

        cart = service.get_cart("user-1")

        assert cart["has_out_of_stock_items"] is True
        assert cart["items"][0]["in_stock"] is False


class TestApplyCoupon:

    def test_empty_cart(self, service, deps):
        deps["cart_repository"].find_by_user.return_value = []

        with pytest.raises(CouponError) as exc:
            service.apply_coupon("user-1", "SAVE10")

        assert exc.value.code == "coupon.empty_cart"

    def test_returns_quote_and_message(self, service, deps, make_item, make_coupon, shipping):
        items = [make_item(price=500)]
        coupon = make_coupon(discount_value=10)
        deps["cart_repository"].find_by_user.return_value = items
        deps["coupon_service"].apply.return_value = (coupon, pricing_service.quote(items, shipping, coupon))

        result = service.apply_coupon("user-1", "SAVE10", email="a@b.com")

        assert result["message"] == "10% discount applied."
        assert result["quote"]["discount"] == 50.0


class TestAddItem:

    def test_standalone_upsert(self, service, deps):
        deps["product_repository"].get_stock.return_value = 10
        deps["cart_repository"].upsert_standalone.return_value = "line-1"

        line_id = service.add_item("user-1", CartItemAdd(product_id="prod-1", quantity=2))

        assert line_id == "line-1"
        deps["cart_repository"].upsert_standalone.assert_called_once_with("user-1", "prod-1", None, 2)
        deps["cart_repository"].insert_bundle_item.assert_not_called()

    def test_bundle_line_inserted(self, service, deps):
        deps["product_repository"].get_stock.return_value = 10

        service.add_item("user-1", CartItemAdd(product_id="prod-1", variant_id="var-1", bundle_id="b1"))

        deps["product_repository"].get_stock.assert_called_once_with("prod-1", "var-1")
        deps["cart_repository"].insert_bundle_item.assert_called_once_with("user-1", "prod-1", "var-1", "b1", 1)

    def test_insufficient_stock(self, service, deps):
        deps["product_repository"].get_stock.return_value = 1

        with pytest.raises(ValidationError) as exc:
            service.add_item("user-1", CartItemAdd(product_id="prod-1", quantity=3))

        assert exc.value.message == "Only 1 units available"
        assert exc.value.meta == {"available": 1}
        deps["cart_repository"].upsert_standalone.assert_not_called()

    def test_unknown_variant(self, service, deps):
        deps["product_repository"].get_stock.return_value = None

        with pytest.raises(NotFoundError) as exc:
            service.add_item("user-1", CartItemAdd(product_id="prod-1", variant_id="var-x"))

        assert exc.value.message == "Variant not found"


class TestBundlesAndLines:

    def test_add_bundle_skips_members_without_product(self, service, deps):
        deps["cart_repository"].add_bundle.return_value = 1

        count = service.add_bundle("user-1", "b1", BundleAdd(items=[
            {"product_id": "prod-1", "quantity": 2},
            {"product_id": None},
        ]))

        assert count == 1
        deps["cart_repository"].add_bundle.assert_called_once_with(
            "user-1", "b1", [{"product_id": "prod-1", "variant_id": None, "quantity": 2}]
        )

    def test_add_bundle_without_valid_members(self, service):
        with pytest.raises(ValidationError):
            service.add_bundle("user-1", "b1", BundleAdd(items=[{"product_id": None}]))

    def test_update_missing_line(self, service, deps):
        deps["cart_repository"].update_quantity.return_value = False

        with pytest.raises(NotFoundError):
            service.update_quantity("user-1", "line-x", 2)

    def test_update_rejects_zero(self, service, deps):
        with pytest.raises(ValidationError):
            service.update_quantity("user-1", "line-1", 0)
        deps["cart_repository"].update_quantity.assert_not_called()

    def test_remove_missing_line(self, service, deps):
        deps["cart_repository"].remove.return_value = False

        with pytest.raises(NotFoundError):
            service.remove_item("user-1", "line-x")
