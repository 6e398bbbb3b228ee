"""
Coupons and the rewards granted from them
"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, DECIMAL, ForeignKey, text
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.sql import func
from storefront.core.database import Base


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    code = Column(String(50), nullable=False, unique=True, index=True)
    description = Column(Text)

    # percentage | fixed | free_shipping
    discount_type = Column(String(20), nullable=False)
    discount_value = Column(DECIMAL(12, 2), nullable=False, default=0)
    min_order_value = Column(DECIMAL(12, 2), default=0)
    max_discount_amount = Column(DECIMAL(12, 2))

    usage_limit = Column(Integer)
    used_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, index=True)

    valid_from = Column(DateTime(timezone=True))
    valid_until = Column(DateTime(timezone=True))

    # Restricciones
    allowed_emails = Column(ARRAY(Text))
    restricted_products = Column(ARRAY(Text))
    restricted_categories = Column(ARRAY(Text))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class UserReward(Base):
    __tablename__ = "user_rewards"

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    coupon_id = Column(UUID(as_uuid=True), ForeignKey("coupons.id", ondelete="CASCADE"))
    code = Column(String(50), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_used = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
