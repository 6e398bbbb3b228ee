"""
Unit tests for address validation and pincode lookup
"""
import pytest
from unittest.mock import MagicMock

from storefront.core.errors import NotFoundError, ValidationError
from storefront.services.address_service import AddressService, validate_address


def _supabase_returning(rows):
    client = MagicMock()
    client.rpc.return_value.execute.return_value = MagicMock(data=rows)
    return client


class TestValidateAddress:

    def test_valid_address(self):
        address = validate_address({
            "address_line_1": "  12 MG Road ", "city": "Bengaluru", "pincode": "560001", "state": "",
        })

        assert address.address_line_1 == "12 MG Road"
        assert address.state is None

    def test_short_address_line(self):
        with pytest.raises(ValidationError) as exc:
            validate_address({"address_line_1": "12", "city": "Bengaluru", "pincode": "560001"})

        assert exc.value.message == "Address must be at least 5 characters"
        assert exc.value.code == "address.invalid"
        assert exc.value.meta == {"field": "address_line_1"}

    def test_bad_pincode(self):
        with pytest.raises(ValidationError) as exc:
            validate_address({"address_line_1": "12 MG Road", "city": "Bengaluru", "pincode": "5600"})

        assert exc.value.message == "Pincode must be exactly 6 digits"


class TestPincodeLookup:

    def test_found(self):
        client = _supabase_returning([{"district": "Bangalore", "state": "Karnataka"}])
        service = AddressService(supabase_factory=lambda: client)

        details = service.lookup_pincode("560001")

        client.rpc.assert_called_once_with('get_pincode_details', {'pincode_input': '560001'})
        assert details == {"district": "Bangalore", "state": "Karnataka"}

    def test_invalid_format_skips_lookup(self):
        factory = MagicMock()
        service = AddressService(supabase_factory=factory)

        with pytest.raises(ValidationError):
            service.lookup_pincode("56A001")

        factory.assert_not_called()

    def test_not_found(self):
        service = AddressService(supabase_factory=lambda: _supabase_returning([]))

        with pytest.raises(NotFoundError):
            service.lookup_pincode("999999")
