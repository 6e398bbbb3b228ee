"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic.
"""
from storefront.repositories.user_repository import UserRepository
from storefront.repositories.product_repository import ProductRepository
from storefront.repositories.cart_repository import CartRepository
from storefront.repositories.coupon_repository import CouponRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.reward_repository import RewardRepository
from storefront.repositories.settings_repository import SettingsRepository

__all__ = [
    'UserRepository',
    'ProductRepository',
    'CartRepository',
    'CouponRepository',
    'OrderRepository',
    'RewardRepository',
    'SettingsRepository',
]
