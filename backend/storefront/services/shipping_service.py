"""
Shipping Service
Shipping fee and free shipping threshold from support_settings
"""
import logging
from decimal import Decimal
from typing import Optional

from storefront.core.config import settings
from storefront.domain.pricing import ShippingSettings
from storefront.repositories.settings_repository import SettingsRepository

logger = logging.getLogger(__name__)


class ShippingService:
    """
    Reads support_settings, falling back to DEFAULT_SHIPPING_COST /
    DEFAULT_FREE_SHIPPING_THRESHOLD when a value is missing or zero
    """

    def __init__(self, repository: Optional[SettingsRepository] = None):
        self.repository = repository or SettingsRepository()

    def get_settings(self) -> ShippingSettings:
        cost, threshold = self.repository.get_shipping()
        return ShippingSettings(
            shipping_cost=Decimal(cost) if cost else settings.DEFAULT_SHIPPING_COST,
            free_shipping_threshold=Decimal(threshold) if threshold else settings.DEFAULT_FREE_SHIPPING_THRESHOLD,
        )

    def update_settings(self, shipping_cost: Decimal, free_shipping_threshold: Decimal) -> ShippingSettings:
        self.repository.update_shipping(shipping_cost, free_shipping_threshold)
        logger.info(f"Shipping settings updated: cost={shipping_cost}, threshold={free_shipping_threshold}")
        return self.get_settings()
