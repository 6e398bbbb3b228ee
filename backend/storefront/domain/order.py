"""
Order Domain Models

Orders, their line items and the payment transactions recorded against
them, plus the request/response schemas of the checkout flow.
"""
import re
from enum import Enum
from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, ConfigDict, field_validator


PINCODE_PATTERN = re.compile(r"^[0-9]{6}$")


class OrderStatus(str, Enum):
    PENDING = "pending"                # created, awaiting payment
    ORDER_CREATED = "order_created"    # payment verified
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    REFUNDED = "refunded"


class TransactionStatus(str, Enum):
    CREATED = "created"
    SUCCESS = "success"
    FAILED = "failed"
    REFUNDED = "refunded"


def _check_length(value: Optional[str], label: str, min_len: int, max_len: int) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if len(value) < min_len:
        raise ValueError(f"{label} must be at least {min_len} characters")
    if len(value) > max_len:
        raise ValueError(f"{label} must be less than {max_len} characters")
    return value


class ShippingAddress(BaseModel):
    """
    Delivery address captured at checkout

    Rules:
        address_line_1: 5-200 chars
        address_line_2: up to 200 chars
        city: 2-100 chars
        pincode: exactly 6 digits
        state: 2-100 chars when given
        district: up to 100 chars
    """

    full_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    address_line_1: str
    address_line_2: Optional[str] = None
    city: str
    pincode: str
    state: Optional[str] = None
    district: Optional[str] = None

    @field_validator('address_line_1')
    @classmethod
    def _line_1(cls, value: str) -> str:
        return _check_length(value, "Address", 5, 200)

    @field_validator('address_line_2')
    @classmethod
    def _line_2(cls, value):
        value = _check_length(value, "Address", 0, 200)
        return value or None

    @field_validator('city')
    @classmethod
    def _city(cls, value: str) -> str:
        return _check_length(value, "City", 2, 100)

    @field_validator('pincode')
    @classmethod
    def _pincode(cls, value: str) -> str:
        value = value.strip()
        if not PINCODE_PATTERN.match(value):
            raise ValueError("Pincode must be exactly 6 digits")
        return value

    @field_validator('state')
    @classmethod
    def _state(cls, value):
        if value is not None and not value.strip():
            return None
        return _check_length(value, "State", 2, 100)

    @field_validator('district')
    @classmethod
    def _district(cls, value):
        value = _check_length(value, "District", 0, 100)
        return value or None


class OrderItem(BaseModel):
    """One purchased line, priced at order time"""

    id: Optional[str] = Field(None, description="Order item ID")
    order_id: Optional[str] = Field(None, description="Parent order ID")
    product_id: str = Field(..., description="Product ID")
    variant_id: Optional[str] = Field(None, description="Variant ID")
    quantity: int = Field(..., description="Quantity ordered", ge=1)
    price: Decimal = Field(..., description="Unit price at order time", ge=0)

    # From product catalog (optional, from JOIN)
    product_name: Optional[str] = Field(None, description="Product name")
    variant_name: Optional[str] = Field(None, description="Variant name")

    model_config = ConfigDict(from_attributes=True)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class Order(BaseModel):
    """
    Order domain model - one row of the orders table

    Lifecycle:
        pending -> order_created (payment verified) -> processing -> shipped -> delivered
        pending -> cancelled (shopper cancel, gateway failure, stale cleanup)
    """

    id: str = Field(..., description="Order ID")
    user_id: str = Field(..., description="Owner")
    order_number: str = Field(..., description="ORD-<epoch ms>")
    total_amount: Decimal = Field(..., description="Amount charged", ge=0)
    subtotal: Optional[Decimal] = Field(None, description="Items subtotal")
    shipping_amount: Optional[Decimal] = Field(None, description="Shipping charged")
    discount_amount: Optional[Decimal] = Field(None, description="Coupon discount")
    coupon_code: Optional[str] = Field(None, description="Applied coupon")
    currency: str = Field("INR", description="Currency code")
    shipping_address: Optional[Dict[str, Any]] = Field(None, description="Delivery address")
    status: OrderStatus = Field(OrderStatus.PENDING, description="Order status")
    payment_status: PaymentStatus = Field(PaymentStatus.PENDING, description="Payment status")
    razorpay_order_id: Optional[str] = Field(None, description="Gateway order ID")
    razorpay_payment_id: Optional[str] = Field(None, description="Gateway payment ID")
    tracking_number: Optional[str] = Field(None, description="Carrier tracking number")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update")

    items: List[OrderItem] = Field(default_factory=list)

    # From JOIN with profiles (admin views)
    customer_email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_pending(self) -> bool:
        return self.status == OrderStatus.PENDING

    def to_dict(self) -> dict:
        """Convert to dictionary with Decimal -> float for JSON"""
        data = self.model_dump(mode='json')
        for field in ['total_amount', 'subtotal', 'shipping_amount', 'discount_amount']:
            if data.get(field) is not None:
                data[field] = float(data[field])
        for item in data['items']:
            item['price'] = float(item['price'])
        return data


class PaymentTransaction(BaseModel):
    id: Optional[str] = None
    order_id: str
    razorpay_order_id: str
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    amount: Decimal
    currency: str = "INR"
    status: TransactionStatus = TransactionStatus.CREATED

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Checkout request / response schemas
# ============================================================================

class CreateOrderRequest(BaseModel):
    """Body of POST /checkout/orders; items come from the stored cart"""
    shipping_address: ShippingAddress
    coupon_code: Optional[str] = Field(None, max_length=50)

    @field_validator('coupon_code')
    @classmethod
    def _upper_code(cls, value):
        if value is None or not value.strip():
            return None
        return value.strip().upper()


class CheckoutSession(BaseModel):
    """What the browser needs to open the Razorpay checkout"""
    order_id: str
    order_number: str
    razorpay_order_id: str
    amount: int = Field(..., description="Amount in paise")
    currency: str
    key_id: str


class VerifyPaymentRequest(BaseModel):
    order_id: str
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class CancelOrderRequest(BaseModel):
    order_id: str
    reason: Optional[str] = Field(None, max_length=200)


class RefundRequest(BaseModel):
    """Admin refund; amount in rupees, the whole order total when omitted"""
    amount: Optional[Decimal] = Field(None, gt=0)


class OrderStatusUpdate(BaseModel):
    """Admin update of fulfilment status"""
    status: OrderStatus
    tracking_number: Optional[str] = Field(None, max_length=100)
    payment_status: Optional[PaymentStatus] = None
