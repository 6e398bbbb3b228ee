"""
Razorpay API Connector
Creates gateway orders, refunds payments and verifies checkout signatures

API CONFIGURATION:
- Base URL: https://api.razorpay.com/v1
- Auth: HTTP basic (key id / key secret)

ENDPOINTS USED:
- POST /orders
  - Body: {"amount": <paise>, "currency": "INR", "receipt": "<order number>", "notes": {...}}
  - Returns: {"id": "order_XXXX", "amount": ..., "currency": ..., "status": "created"}
- POST /payments/{payment_id}/refund
  - Body: {"amount": <paise, optional>, "speed": "normal", "notes": {...}}
  - Returns: {"id": "rfnd_XXXX", "payment_id": ..., "amount": ..., "status": ...}

SIGNATURE:
- Checkout returns razorpay_order_id, razorpay_payment_id, razorpay_signature
- signature = hex(HMAC-SHA256(key_secret, "<razorpay_order_id>|<razorpay_payment_id>"))
"""
import hmac
import hashlib
import logging
from typing import Any, Dict, Optional

import httpx

from storefront.core.config import settings

logger = logging.getLogger(__name__)


class RazorpayError(Exception):
    """Gateway unreachable or refused the request"""


def compute_signature(razorpay_order_id: str, razorpay_payment_id: str, key_secret: str) -> str:
    message = f"{razorpay_order_id}|{razorpay_payment_id}".encode()
    return hmac.new(key_secret.encode(), message, hashlib.sha256).hexdigest()


class RazorpayConnector:
    """
    Connector for the Razorpay Orders API

    Handles:
    - Order creation (amount in paise)
    - Refunds
    - Payment signature verification
    """

    def __init__(self, key_id: str = None, key_secret: str = None, base_url: str = None, timeout: float = 30.0):
        self.key_id = key_id or settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret or settings.RAZORPAY_KEY_SECRET
        self.base_url = (base_url or settings.RAZORPAY_API_URL).rstrip("/")
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    async def create_order(
        self,
        amount_paise: int,
        receipt: str,
        currency: str = "INR",
        notes: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """
        Create a Razorpay order

        Args:
            amount_paise: Amount in the smallest currency unit
            receipt: Our order number
            currency: ISO currency code
            notes: Free-form key/values shown in the Razorpay dashboard

        Returns:
            Razorpay order payload (id, amount, currency, status)

        Raises:
            RazorpayError: when not configured, unreachable, or the API refuses
        """
        if not self.is_configured:
            raise RazorpayError("Razorpay credentials not configured")

        payload = {
            "amount": amount_paise,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/orders",
                    json=payload,
                    auth=(self.key_id, self.key_secret),
                )
                response.raise_for_status()
                data = response.json()

            except httpx.HTTPStatusError as e:
                logger.error(f"Razorpay API error: {e.response.status_code} - {e.response.text}")
                raise RazorpayError(f"Razorpay returned {e.response.status_code}") from e
            except httpx.HTTPError as e:
                logger.error(f"Razorpay request failed: {e}")
                raise RazorpayError(str(e)) from e

        if not data.get("id"):
            raise RazorpayError("Razorpay response missing order id")

        logger.info(f"Razorpay order created: {data['id']} for receipt {receipt} ({amount_paise} {currency})")
        return data

    async def refund(
        self,
        payment_id: str,
        amount_paise: Optional[int] = None,
        notes: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """
        Refund a captured payment, in full when amount_paise is omitted

        Returns:
            Razorpay refund payload (id, payment_id, amount, status)

        Raises:
            RazorpayError: when not configured, unreachable, or the API refuses
        """
        if not self.is_configured:
            raise RazorpayError("Razorpay credentials not configured")

        payload: Dict[str, Any] = {"speed": "normal", "notes": notes or {}}
        if amount_paise is not None:
            payload["amount"] = amount_paise

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/payments/{payment_id}/refund",
                    json=payload,
                    auth=(self.key_id, self.key_secret),
                )
                response.raise_for_status()
                data = response.json()

            except httpx.HTTPStatusError as e:
                logger.error(f"Razorpay refund error: {e.response.status_code} - {e.response.text}")
                raise RazorpayError(f"Razorpay returned {e.response.status_code}") from e
            except httpx.HTTPError as e:
                logger.error(f"Razorpay refund request failed: {e}")
                raise RazorpayError(str(e)) from e

        if not data.get("id"):
            raise RazorpayError("Razorpay response missing refund id")

        logger.info(f"Razorpay refund {data['id']} for payment {payment_id} ({data.get('amount')})")
        return data

    def verify_signature(self, razorpay_order_id: str, razorpay_payment_id: str, signature: str) -> bool:
        """Constant-time check of the checkout signature"""
        if not self.key_secret or not signature:
            return False
        expected = compute_signature(razorpay_order_id, razorpay_payment_id, self.key_secret)
        return hmac.compare_digest(expected, signature)
