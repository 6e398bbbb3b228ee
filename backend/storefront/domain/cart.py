"""
Cart Domain Models

A cart line joins cart_items with the product, the optional variant and
the optional bundle it was added through.
"""
from enum import Enum
from typing import List, Optional
from decimal import Decimal

from pydantic import BaseModel, Field, ConfigDict


class BundlePriceType(str, Enum):
    """How a bundle group total is computed from its member lines"""
    FIXED = "fixed"                               # flat pass-through of the items total
    PERCENTAGE_DISCOUNT = "percentage_discount"   # items total minus N percent
    FIXED_DISCOUNT = "fixed_discount"             # items total minus N per bundle, floored at 0


class Bundle(BaseModel):
    """A named group of products sold together"""

    id: str = Field(..., description="Bundle ID")
    name: Optional[str] = Field(None, description="Bundle name")
    price_type: BundlePriceType = Field(..., description="Pricing mode")
    price_value: Decimal = Field(Decimal('0'), description="Percent or amount, depending on mode", ge=0)

    model_config = ConfigDict(from_attributes=True, use_enum_values=False)


class CartProduct(BaseModel):
    """Product columns needed to price and display a cart line"""

    id: str
    name: str
    base_price: Decimal = Field(..., ge=0)
    discount_price: Optional[Decimal] = Field(None, ge=0)
    stock_quantity: int = 0
    category_id: Optional[str] = None


class CartVariant(BaseModel):
    id: str
    variant_name: Optional[str] = None
    absolute_price: Optional[Decimal] = Field(None, ge=0)
    price_adjustment: Optional[Decimal] = None
    stock_quantity: int = 0


class CartItem(BaseModel):
    """
    One line of a shopper's cart

    unit_price resolution:
        1. variant.absolute_price
        2. product.base_price + variant.price_adjustment
        3. product.discount_price (when set and non-zero)
        4. product.base_price
    """

    id: Optional[str] = Field(None, description="cart_items row ID")
    product: CartProduct
    quantity: int = Field(..., ge=1)
    variant: Optional[CartVariant] = None
    bundle: Optional[Bundle] = None

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def bundle_id(self) -> Optional[str]:
        return self.bundle.id if self.bundle else None

    @property
    def unit_price(self) -> Decimal:
        if self.variant is not None:
            if self.variant.absolute_price:
                return self.variant.absolute_price
            if self.variant.price_adjustment:
                return self.product.base_price + self.variant.price_adjustment
        if self.product.discount_price:
            return self.product.discount_price
        return self.product.base_price

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def available_stock(self) -> int:
        if self.variant is not None:
            return self.variant.stock_quantity
        return self.product.stock_quantity

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'product_id': self.product.id,
            'product_name': self.product.name,
            'variant_id': self.variant.id if self.variant else None,
            'variant_name': self.variant.variant_name if self.variant else None,
            'bundle_id': self.bundle_id,
            'quantity': self.quantity,
            'unit_price': float(self.unit_price),
            'line_total': float(self.line_total),
            'in_stock': self.available_stock >= self.quantity,
        }


class CartItemAdd(BaseModel):
    """Schema for adding a product to the cart"""
    product_id: str
    quantity: int = Field(1, ge=1)
    variant_id: Optional[str] = None
    bundle_id: Optional[str] = None


class BundleMember(BaseModel):
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    quantity: int = Field(1, ge=1)


class BundleAdd(BaseModel):
    """Schema for adding every member of a bundle to the cart"""
    items: List[BundleMember]


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1)
