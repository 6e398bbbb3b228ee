"""
Shopper profiles, roles, newsletter subscribers and store settings
"""
from sqlalchemy import Column, String, Boolean, DateTime, DECIMAL, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from storefront.core.database import Base


class Profile(Base):
    """Mirror of auth.users kept by Supabase; id is the auth user id"""
    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=True), primary_key=True)
    email = Column(String(255), index=True)
    full_name = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class UserRole(Base):
    __tablename__ = "user_roles"

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    role = Column(String(30), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class NewsletterSubscriber(Base):
    __tablename__ = "newsletter_subscribers"

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    email = Column(String(255), nullable=False, unique=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SupportSettings(Base):
    """Single-row store settings (shipping cost and free shipping threshold)"""
    __tablename__ = "support_settings"

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    shipping_cost = Column(DECIMAL(12, 2))
    free_shipping_threshold = Column(DECIMAL(12, 2))
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
