"""
Product Domain Models

Catalog entities as stored in the products / product_variants tables.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class ProductVariant(BaseModel):
    """
    A purchasable option of a product (size, frame, material...)

    Pricing:
        absolute_price: replaces the product price entirely when set
        price_adjustment: added to the product's base price when set
    """

    id: str = Field(..., description="Variant ID")
    product_id: str = Field(..., description="Parent product ID")
    variant_name: str = Field(..., description="Display name (e.g. 'XL', 'Black frame')")
    variant_type: Optional[str] = Field(None, description="Size, Frame, Material, ...")
    sku: Optional[str] = Field(None, description="Variant SKU")
    absolute_price: Optional[Decimal] = Field(None, description="Overrides the product price", ge=0)
    price_adjustment: Optional[Decimal] = Field(None, description="Added to product base price")
    stock_quantity: int = Field(0, description="Units available")
    is_active: bool = Field(True, description="Whether variant is sellable")

    model_config = ConfigDict(from_attributes=True)


class Product(BaseModel):
    """
    Product domain model - represents a product in the storefront catalog

    Fields:
        base_price: list price
        discount_price: sale price, used instead of base_price when set and non-zero
        stock_quantity: units available (variants carry their own stock)
        category_id: category used by coupon category restrictions
    """

    id: str = Field(..., description="Product ID")
    name: str = Field(..., description="Product name")
    sku: Optional[str] = Field(None, description="Stock Keeping Unit")
    short_description: Optional[str] = Field(None, description="Short description")
    category_id: Optional[str] = Field(None, description="Category ID")
    base_price: Decimal = Field(..., description="List price", ge=0)
    discount_price: Optional[Decimal] = Field(None, description="Sale price", ge=0)
    stock_quantity: int = Field(0, description="Units available")
    is_active: bool = Field(True, description="Whether product is listed")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    variants: List[ProductVariant] = Field(default_factory=list, description="Variants (detail view)")

    model_config = ConfigDict(from_attributes=True)

    @property
    def effective_price(self) -> Decimal:
        """Sale price when present, else list price"""
        if self.discount_price:
            return self.discount_price
        return self.base_price

    @property
    def is_on_sale(self) -> bool:
        return bool(self.discount_price) and self.discount_price < self.base_price

    @property
    def is_out_of_stock(self) -> bool:
        return self.stock_quantity < 1

    def to_dict(self) -> dict:
        """Convert to dictionary with computed fields and floats for JSON"""
        data = self.model_dump()
        data['effective_price'] = float(self.effective_price)
        data['is_on_sale'] = self.is_on_sale
        data['is_out_of_stock'] = self.is_out_of_stock

        for field in ['base_price', 'discount_price']:
            if data.get(field) is not None:
                data[field] = float(data[field])
        for variant in data['variants']:
            for field in ['absolute_price', 'price_adjustment']:
                if variant.get(field) is not None:
                    variant[field] = float(variant[field])

        if data.get('created_at'):
            data['created_at'] = data['created_at'].isoformat()

        return data
