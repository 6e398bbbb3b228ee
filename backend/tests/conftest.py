"""
Pytest fixtures and configuration for Storefront backend tests

Builders for cart lines, coupons and orders so service tests can run
without a database.
"""
import pytest
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

from storefront.core.auth import TokenUser
from storefront.domain.cart import Bundle, CartItem, CartProduct, CartVariant
from storefront.domain.coupon import Coupon
from storefront.domain.order import Order, OrderItem
from storefront.domain.pricing import ShippingSettings


NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def shopper():
    return TokenUser(id="user-1", email="shopper@example.com")


@pytest.fixture
def shipping():
    """Default store settings: 50 shipping, free from 499"""
    return ShippingSettings(shipping_cost=Decimal('50'), free_shipping_threshold=Decimal('499'))


@pytest.fixture
def make_item():
    """
    Build a CartItem

    Usage:
        make_item(price=100, quantity=2)
        make_item(price=100, bundle=("b1", "percentage_discount", 10))
    """
    counter = {"n": 0}

    def _make(price=100, quantity=1, product_id=None, category_id=None, discount_price=None,
              variant_price=None, stock=100, bundle=None):
        counter["n"] += 1
        n = counter["n"]
        variant = None
        if variant_price is not None:
            variant = CartVariant(id=f"var-{n}", variant_name="M", absolute_price=Decimal(str(variant_price)),
                                  stock_quantity=stock)
        bundle_model = None
        if bundle is not None:
            bundle_id, price_type, value = bundle
            bundle_model = Bundle(id=bundle_id, name=f"Bundle {bundle_id}", price_type=price_type,
                                  price_value=Decimal(str(value)))
        return CartItem(
            id=f"line-{n}",
            quantity=quantity,
            product=CartProduct(
                id=product_id or f"prod-{n}",
                name=f"Product {n}",
                base_price=Decimal(str(price)),
                discount_price=Decimal(str(discount_price)) if discount_price is not None else None,
                stock_quantity=stock,
                category_id=category_id,
            ),
            variant=variant,
            bundle=bundle_model,
        )

    return _make


@pytest.fixture
def make_coupon():
    def _make(**overrides):
        data = {
            "id": "coupon-1",
            "code": "SAVE10",
            "discount_type": "percentage",
            "discount_value": Decimal('10'),
            "min_order_value": Decimal('0'),
            "is_active": True,
            "used_count": 0,
        }
        data.update(overrides)
        return Coupon(**data)

    return _make


@pytest.fixture
def make_order():
    def _make(**overrides):
        data = {
            "id": "order-1",
            "user_id": "user-1",
            "order_number": "ORD-1718452800000",
            "total_amount": Decimal('549'),
            "subtotal": Decimal('499'),
            "shipping_amount": Decimal('50'),
            "discount_amount": Decimal('0'),
            "currency": "INR",
            "shipping_address": {
                "full_name": "Asha Rao",
                "address_line_1": "12 MG Road",
                "city": "Bengaluru",
                "state": "Karnataka",
                "pincode": "560001",
            },
            "status": "pending",
            "payment_status": "pending",
            "razorpay_order_id": "order_RZP123",
            "created_at": NOW,
            "items": [
                OrderItem(id="oi-1", order_id="order-1", product_id="prod-1", quantity=1,
                          price=Decimal('499'), product_name="Mug"),
            ],
        }
        data.update(overrides)
        return Order(**data)

    return _make


@pytest.fixture
def mock_db():
    """
    (get_conn patch target factory) -> (conn, cursor)

    Usage:
        conn, cursor = mock_db(mock_get_conn)
    """
    def _wire(mock_get_conn):
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        return mock_conn, mock_cursor

    return _wire
