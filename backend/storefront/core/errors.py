"""
Typed errors for the storefront backend

Services raise these; the exception handler registered in main.py turns
them into JSON responses shaped like FastAPI's own errors:

    {"detail": "<user-facing message>", "code": "<stable code>"}
"""
from typing import Any, Dict, Optional


class StorefrontError(Exception):
    """Base error with a stable code and a message safe to show to shoppers"""

    status_code = 400
    default_code = "storefront.error"

    def __init__(self, message: str, code: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.meta = dict(meta or {})

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.meta:
            payload["meta"] = self.meta
        return payload


class ValidationError(StorefrontError):
    status_code = 422
    default_code = "request.invalid"


class NotFoundError(StorefrontError):
    status_code = 404
    default_code = "resource.not_found"


class ForbiddenError(StorefrontError):
    status_code = 403
    default_code = "auth.forbidden"


class ConflictError(StorefrontError):
    status_code = 409
    default_code = "resource.conflict"


class RateLimitedError(StorefrontError):
    status_code = 429
    default_code = "rate_limited"


class CouponError(StorefrontError):
    """A coupon that cannot be applied to the current cart"""

    default_code = "coupon.invalid"


class CheckoutError(StorefrontError):
    default_code = "checkout.failed"


class PaymentError(StorefrontError):
    status_code = 502
    default_code = "payment.failed"
