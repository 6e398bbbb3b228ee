"""
Address Service
Shipping address validation and pincode lookup

Pincode details come from the get_pincode_details Postgres function,
called through the Supabase client.
"""
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from storefront.core.database import get_supabase
from storefront.core.errors import NotFoundError, ValidationError
from storefront.domain.order import PINCODE_PATTERN, ShippingAddress

logger = logging.getLogger(__name__)


def validate_address(data: Dict[str, Any]) -> ShippingAddress:
    """
    Validate a raw address payload

    Raises:
        ValidationError: with the first failing rule as the message
    """
    try:
        return ShippingAddress(**data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        message = str(first.get('msg', 'Invalid address')).removeprefix("Value error, ")
        field = ".".join(str(part) for part in first.get('loc', ()))
        raise ValidationError(message, code="address.invalid", meta={"field": field})


class AddressService:

    def __init__(self, supabase_factory: Optional[Callable] = None):
        self._supabase_factory = supabase_factory or get_supabase

    def lookup_pincode(self, pincode: str) -> Dict[str, Any]:
        """
        District / state for a 6-digit pincode

        Raises:
            ValidationError: bad format
            NotFoundError: unknown pincode
        """
        pincode = (pincode or "").strip()
        if not PINCODE_PATTERN.match(pincode):
            raise ValidationError("Invalid pincode format", code="pincode.invalid")

        client = self._supabase_factory()
        response = client.rpc('get_pincode_details', {'pincode_input': pincode}).execute()
        rows = response.data or []

        if not rows:
            logger.info(f"Pincode not found: {pincode}")
            raise NotFoundError("Pincode not found", code="pincode.not_found")

        return rows[0]
