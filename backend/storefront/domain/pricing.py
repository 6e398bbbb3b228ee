"""
Pricing Domain Models

Value objects produced by the pricing service: the shipping settings in
force and the quote for a cart (with or without a coupon).
"""
from typing import List, Optional
from decimal import Decimal

from pydantic import BaseModel, Field


class ShippingSettings(BaseModel):
    """Flat shipping fee and the subtotal above which shipping is free"""

    shipping_cost: Decimal = Field(Decimal('50'), ge=0)
    free_shipping_threshold: Decimal = Field(Decimal('499'), ge=0)

    def to_dict(self) -> dict:
        return {
            'shipping_cost': float(self.shipping_cost),
            'free_shipping_threshold': float(self.free_shipping_threshold),
        }


class ShippingSettingsUpdate(BaseModel):
    shipping_cost: Decimal = Field(..., ge=0)
    free_shipping_threshold: Decimal = Field(..., ge=0)


class BundleGroupQuote(BaseModel):
    bundle_id: str
    bundle_name: Optional[str] = None
    items_total: Decimal
    bundle_quantity: int
    group_total: Decimal


class PriceQuote(BaseModel):
    """
    Result of pricing a cart

    Fields:
        subtotal: standalone line totals + bundle group totals
        shipping: flat fee, or 0 above the threshold / with a free shipping coupon
        eligible_amount: amount the coupon discount is computed on
        discount: coupon discount (0 without coupon)
        total: max(0, subtotal + shipping - discount), whole currency units
        amount_to_free_shipping / free_shipping_progress: cart page hint
    """

    subtotal: Decimal = Decimal('0')
    shipping: Decimal = Decimal('0')
    eligible_amount: Decimal = Decimal('0')
    discount: Decimal = Decimal('0')
    total: Decimal = Decimal('0')
    coupon_code: Optional[str] = None
    free_shipping_applied: bool = False
    amount_to_free_shipping: Decimal = Decimal('0')
    free_shipping_progress: Decimal = Decimal('0')
    item_count: int = 0
    bundles: List[BundleGroupQuote] = Field(default_factory=list)

    @property
    def amount_in_paise(self) -> int:
        """Gateway amount in the smallest currency unit"""
        return int(self.total * 100)

    def to_dict(self) -> dict:
        data = self.model_dump()
        for field in ['subtotal', 'shipping', 'eligible_amount', 'discount', 'total',
                      'amount_to_free_shipping', 'free_shipping_progress']:
            data[field] = float(data[field])
        for group in data['bundles']:
            group['items_total'] = float(group['items_total'])
            group['group_total'] = float(group['group_total'])
        return data
