"""
Coupon Domain Models

A coupon is a discount rule (percentage, fixed amount or free shipping)
with optional restrictions: minimum order, usage limit, allowed e-mails,
restricted products and restricted categories.
"""
from enum import Enum
from typing import List, Optional
from datetime import datetime, time, timezone
from decimal import Decimal

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_SHIPPING = "free_shipping"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _normalize_code(value: str) -> str:
    return value.strip().upper()


def _check_discount_value(discount_type: DiscountType, value: Decimal):
    if discount_type == DiscountType.PERCENTAGE:
        if not (Decimal('0') < value <= Decimal('100')):
            raise ValueError("Percentage discount must be between 0 and 100")
    elif discount_type == DiscountType.FIXED:
        if value <= 0:
            raise ValueError("Fixed discount must be greater than 0")


class Coupon(BaseModel):
    """
    Coupon domain model - one row of the coupons table

    Restrictions:
        allowed_emails: only these shoppers may use it (case-insensitive)
        restricted_products / restricted_categories: only matching standalone
            cart lines count toward the discountable amount
    """

    id: str = Field(..., description="Coupon ID")
    code: str = Field(..., description="Upper-case promo code")
    description: Optional[str] = Field(None, description="Shown to shoppers")
    discount_type: DiscountType = Field(..., description="percentage, fixed or free_shipping")
    discount_value: Decimal = Field(Decimal('0'), description="Percent or amount", ge=0)
    min_order_value: Decimal = Field(Decimal('0'), description="Minimum subtotal", ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, description="Cap for percentage coupons", ge=0)
    usage_limit: Optional[int] = Field(None, description="Total redemptions allowed", ge=0)
    used_count: int = Field(0, description="Redemptions so far", ge=0)
    is_active: bool = Field(True, description="Whether coupon can be redeemed")
    valid_from: Optional[datetime] = Field(None, description="Start of validity")
    valid_until: Optional[datetime] = Field(None, description="End of validity")
    allowed_emails: Optional[List[str]] = Field(None, description="Shoppers allowed to redeem")
    restricted_products: Optional[List[str]] = Field(None, description="Eligible product IDs")
    restricted_categories: Optional[List[str]] = Field(None, description="Eligible category IDs")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    model_config = ConfigDict(from_attributes=True)

    @field_validator('min_order_value', 'used_count', mode='before')
    @classmethod
    def _null_as_zero(cls, value):
        return 0 if value is None else value

    @field_validator('is_active', mode='before')
    @classmethod
    def _null_as_active(cls, value):
        return True if value is None else value

    @property
    def is_restricted(self) -> bool:
        """Whether only some cart lines are eligible"""
        return bool(self.restricted_products) or bool(self.restricted_categories)

    @property
    def expires_at(self) -> Optional[datetime]:
        """
        Effective expiry instant. A valid_until stored at midnight (date-only
        input from the admin form) is valid through the end of that day.
        """
        if self.valid_until is None:
            return None
        expiry = _as_utc(self.valid_until)
        if expiry.time() == time(0, 0):
            expiry = expiry.replace(hour=23, minute=59, second=59, microsecond=999999)
        return expiry

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        expiry = self.expires_at
        if expiry is None:
            return False
        return _as_utc(now or datetime.now(timezone.utc)) > expiry

    def is_started(self, now: Optional[datetime] = None) -> bool:
        if self.valid_from is None:
            return True
        return _as_utc(now or datetime.now(timezone.utc)) >= _as_utc(self.valid_from)

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.used_count >= self.usage_limit

    def allows_email(self, email: Optional[str]) -> bool:
        if not self.allowed_emails:
            return True
        if not email:
            return False
        allowed = {e.strip().lower() for e in self.allowed_emails}
        return email.strip().lower() in allowed

    def matches_product(self, product_id: str, category_id: Optional[str]) -> bool:
        """Whether a line counts toward a restricted coupon"""
        if self.restricted_products and product_id in self.restricted_products:
            return True
        if self.restricted_categories and category_id and category_id in self.restricted_categories:
            return True
        return False

    @property
    def value_label(self) -> str:
        """Short label used by prizes and toasts: '10% OFF', '₹100 OFF'"""
        if self.discount_type == DiscountType.FREE_SHIPPING:
            return "Free Shipping"
        value = self.discount_value.normalize()
        value_str = f"{value:f}"
        if self.discount_type == DiscountType.PERCENTAGE:
            return f"{value_str}% OFF"
        return f"₹{value_str} OFF"

    def to_dict(self) -> dict:
        data = self.model_dump(mode='json')
        for field in ['discount_value', 'min_order_value', 'max_discount_amount']:
            if data.get(field) is not None:
                data[field] = float(data[field])
        data['value_label'] = self.value_label
        data['is_exhausted'] = self.is_exhausted
        return data


class CouponBase(BaseModel):
    code: str = Field(..., min_length=3, max_length=50)
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: Decimal = Field(Decimal('0'), ge=0)
    min_order_value: Decimal = Field(Decimal('0'), ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    is_active: bool = True
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    allowed_emails: Optional[List[str]] = None
    restricted_products: Optional[List[str]] = None
    restricted_categories: Optional[List[str]] = None

    @field_validator('code')
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return _normalize_code(value)

    @field_validator('allowed_emails')
    @classmethod
    def _lower_emails(cls, value):
        if value is None:
            return None
        emails = [e.strip().lower() for e in value if e and e.strip()]
        return emails or None

    @field_validator('restricted_products', 'restricted_categories')
    @classmethod
    def _empty_as_none(cls, value):
        return value or None

    @model_validator(mode='after')
    def _check_value(self):
        _check_discount_value(self.discount_type, self.discount_value)
        if self.valid_from and self.valid_until and _as_utc(self.valid_until) < _as_utc(self.valid_from):
            raise ValueError("valid_until must be after valid_from")
        return self


class CouponCreate(CouponBase):
    """Schema for creating a coupon (admin)"""


class CouponUpdate(BaseModel):
    """Schema for updating a coupon (admin); only provided fields change"""
    description: Optional[str] = None
    discount_value: Optional[Decimal] = Field(None, ge=0)
    min_order_value: Optional[Decimal] = Field(None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    allowed_emails: Optional[List[str]] = None
    restricted_products: Optional[List[str]] = None
    restricted_categories: Optional[List[str]] = None


class SmartCouponRequest(BaseModel):
    """
    Schema for generating a single-use, personalised coupon

    Either user_id or email targets a shopper; with neither the coupon
    is open to anyone who has the code.
    """
    user_id: Optional[str] = None
    email: Optional[str] = None
    discount_type: DiscountType
    discount_value: Decimal = Field(..., ge=0)
    prefix: Optional[str] = Field(None, max_length=12)
    valid_days: Optional[int] = Field(None, ge=1, le=365)
    restricted_products: List[str] = Field(default_factory=list)
    restricted_categories: List[str] = Field(default_factory=list)
    min_order_value: Decimal = Field(Decimal('0'), ge=0)

    @model_validator(mode='after')
    def _check_value(self):
        _check_discount_value(self.discount_type, self.discount_value)
        return self


class CouponApply(BaseModel):
    """Schema for applying a promo code to the cart"""
    code: str = Field(..., min_length=1, max_length=50)

    @field_validator('code')
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return _normalize_code(value)
