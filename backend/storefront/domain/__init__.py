"""
Domain Layer - Business Entities

Pydantic models for the storefront: catalog, cart, coupons, pricing,
orders and rewards.
"""
from storefront.domain.product import Product, ProductVariant
from storefront.domain.cart import Bundle, BundlePriceType, CartItem
from storefront.domain.coupon import Coupon, DiscountType
from storefront.domain.pricing import PriceQuote, ShippingSettings
from storefront.domain.order import Order, OrderItem, OrderStatus, PaymentStatus, ShippingAddress
from storefront.domain.reward import Prize, Rarity, UserReward

__all__ = [
    'Product', 'ProductVariant',
    'Bundle', 'BundlePriceType', 'CartItem',
    'Coupon', 'DiscountType',
    'PriceQuote', 'ShippingSettings',
    'Order', 'OrderItem', 'OrderStatus', 'PaymentStatus', 'ShippingAddress',
    'Prize', 'Rarity', 'UserReward',
]
