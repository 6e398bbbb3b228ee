"""
Unit tests for order domain models: ShippingAddress validation and Order serialization
"""
import pytest
from decimal import Decimal

from pydantic import ValidationError

from storefront.domain.order import ShippingAddress


ADDRESS = {"address_line_1": "12 MG Road", "city": "Bengaluru", "pincode": "560001"}


class TestShippingAddress:

    def test_valid_address_is_trimmed(self):
        address = ShippingAddress(**{**ADDRESS, "address_line_1": "  12 MG Road  ", "state": "  "})

        assert address.address_line_1 == "12 MG Road"
        assert address.state is None

    @pytest.mark.parametrize("field,value", [
        ("address_line_1", "12"),
        ("address_line_1", "x" * 201),
        ("city", "B"),
        ("pincode", "5600"),
        ("pincode", "56000A"),
        ("state", "K"),
    ])
    def test_invalid_fields(self, field, value):
        with pytest.raises(ValidationError) as exc:
            ShippingAddress(**{**ADDRESS, field: value})

        assert exc.value.errors()[0]["loc"] == (field,)

    def test_blank_optional_lines_become_none(self):
        address = ShippingAddress(**ADDRESS, address_line_2="", district="")

        assert address.address_line_2 is None
        assert address.district is None


class TestOrder:

    def test_is_pending(self, make_order):
        assert make_order().is_pending is True
        assert make_order(status="shipped").is_pending is False

    def test_to_dict_uses_floats(self, make_order):
        data = make_order(discount_amount=None).to_dict()

        assert data["total_amount"] == 549.0
        assert data["discount_amount"] is None
        assert data["items"][0]["price"] == 499.0
        assert data["status"] == "pending"
