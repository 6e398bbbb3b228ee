"""
Unit tests for ShippingService
"""
from decimal import Decimal
from unittest.mock import MagicMock

from storefront.services.shipping_service import ShippingService


class TestShippingService:

    def test_stored_values(self):
        repo = MagicMock()
        repo.get_shipping.return_value = (Decimal('80'), Decimal('999'))

        shipping = ShippingService(repository=repo).get_settings()

        assert shipping.shipping_cost == Decimal('80')
        assert shipping.free_shipping_threshold == Decimal('999')

    def test_defaults_when_missing_or_zero(self):
        repo = MagicMock()
        repo.get_shipping.return_value = (None, Decimal('0'))

        shipping = ShippingService(repository=repo).get_settings()

        assert shipping.shipping_cost == Decimal('50')
        assert shipping.free_shipping_threshold == Decimal('499')

    def test_update_returns_fresh_settings(self):
        repo = MagicMock()
        repo.get_shipping.return_value = (Decimal('40'), Decimal('600'))

        shipping = ShippingService(repository=repo).update_settings(Decimal('40'), Decimal('600'))

        repo.update_shipping.assert_called_once_with(Decimal('40'), Decimal('600'))
        assert shipping.shipping_cost == Decimal('40')
