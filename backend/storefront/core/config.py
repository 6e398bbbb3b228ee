"""
Centralized application settings
"""
import json
from decimal import Decimal
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Storefront backend settings"""

    # API Settings
    API_TITLE: str = "Storefront API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Cart pricing, checkout, coupons and orders for the storefront"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database (secrets are checked on first use, not at import)
    DATABASE_URL: str = ""
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_JWT_SECRET: str = ""

    # CORS - Can be string (comma-separated) or JSON array
    # Example: "http://localhost:5173,https://yourdomain.com" or '["http://localhost:5173"]'
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:5173,http://localhost:8080"

    # Payments
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_API_URL: str = "https://api.razorpay.com/v1"
    CURRENCY: str = "INR"

    # Transactional e-mail
    RESEND_API_KEY: str = ""
    RESEND_FROM: str = ""
    RESEND_API_URL: str = "https://api.resend.com"
    RESEND_TIMEOUT_SECONDS: float = 10.0

    # Calls between hosted functions / cron jobs
    INTERNAL_SERVICE_KEY: str = ""

    # Pricing defaults (overridden by support_settings)
    DEFAULT_SHIPPING_COST: Decimal = Decimal("50")
    DEFAULT_FREE_SHIPPING_THRESHOLD: Decimal = Decimal("499")

    # Checkout limits
    MAX_PENDING_ORDERS: int = 5
    PENDING_ORDER_WINDOW_MINUTES: int = 15
    STALE_ORDER_HOURS: int = 4

    # Rewards / smart coupons
    REWARD_EXPIRY_DAYS: int = 7
    SMART_COUPON_PREFIX: str = "SMART"
    SMART_COUPON_VALID_DAYS: int = 30

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:5173"]

        # Try JSON parse first (for array format)
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        # Fall back to comma-separated string
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
