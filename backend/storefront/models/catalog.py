"""
Catalog tables: categories, products, product variants and bundles
"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, DECIMAL, ForeignKey, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.core.database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    name = Column(String(255), nullable=False, unique=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    products = relationship("Product", back_populates="category")


class Product(Base):
    """
    Sellable product; stock_quantity is used when the product has no variants
    """
    __tablename__ = "products"

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    sku = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    short_description = Column(Text)
    category_id = Column(UUID(as_uuid=True), ForeignKey("categories.id"), index=True)

    # Precios
    base_price = Column(DECIMAL(12, 2), nullable=False)
    discount_price = Column(DECIMAL(12, 2))

    stock_quantity = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category = relationship("Category", back_populates="products")
    variants = relationship("ProductVariant", back_populates="product", cascade="all, delete-orphan")


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_name = Column(String(100), nullable=False)
    variant_type = Column(String(50))
    sku = Column(String(64))

    # absolute_price wins over base_price + price_adjustment
    absolute_price = Column(DECIMAL(12, 2))
    price_adjustment = Column(DECIMAL(12, 2), default=0)

    stock_quantity = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    product = relationship("Product", back_populates="variants")


class Bundle(Base):
    """
    price_type: fixed | percentage_discount | fixed_discount
    """
    __tablename__ = "bundles"

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    name = Column(String(255), nullable=False)
    price_type = Column(String(30), nullable=False)
    price_value = Column(DECIMAL(12, 2), nullable=False, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
