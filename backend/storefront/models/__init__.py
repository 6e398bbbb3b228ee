"""
Modelos de base de datos (schema only; queries live in repositories)
"""
from .catalog import Category, Product, ProductVariant, Bundle
from .cart import CartItem
from .coupon import Coupon, UserReward
from .order import Order, OrderItem, PaymentTransaction
from .account import Profile, UserRole, NewsletterSubscriber, SupportSettings

__all__ = [
    "Category",
    "Product",
    "ProductVariant",
    "Bundle",
    "CartItem",
    "Coupon",
    "UserReward",
    "Order",
    "OrderItem",
    "PaymentTransaction",
    "Profile",
    "UserRole",
    "NewsletterSubscriber",
    "SupportSettings",
]
