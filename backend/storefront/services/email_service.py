"""
Email Service
Order e-mails and newsletter broadcasts, sent through Resend

Sending is best-effort for order e-mails: failures are logged and the
caller carries on.
"""
import re
import html
import logging
from email.utils import parseaddr
from typing import Dict, List, Optional

import httpx

from storefront.connectors.resend_connector import ResendConnector, dedupe_emails
from storefront.domain.order import Order, OrderStatus
from storefront.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


BROADCAST_BATCH_SIZE = 50
TAG_PATTERN = re.compile(r"<[^>]+>")

# status -> (subject template, headline, message)
ORDER_EMAIL_COPY: Dict[str, tuple] = {
    OrderStatus.PENDING.value: (
        "Order Confirmation #{number}", "Order Confirmed",
        "Thank you for your purchase! We've received your order.",
    ),
    OrderStatus.ORDER_CREATED.value: (
        "Order Confirmation #{number}", "Order Confirmed",
        "Thank you for your purchase! We've received your order.",
    ),
    OrderStatus.PROCESSING.value: (
        "We're working on Order #{number}", "Processing Order",
        "Your order is currently being prepared by our team.",
    ),
    OrderStatus.SHIPPED.value: (
        "Order #{number} Shipped!", "On Its Way",
        "Good news! Your order has been shipped.",
    ),
    OrderStatus.DELIVERED.value: (
        "Order #{number} Delivered", "Delivered",
        "Your package has arrived!",
    ),
    OrderStatus.CANCELLED.value: (
        "Order #{number} Cancelled", "Order Cancelled",
        "This order has been cancelled as requested.",
    ),
}

DEFAULT_COPY = ("Order Update #{number}", "Order Update", "Here is the latest update on your order.")


def _currency_symbol(currency: str) -> str:
    return "₹" if currency == "INR" else "$"


def _amount(value) -> str:
    return f"{float(value or 0):,.2f}"


def render_order_email(order: Order) -> Dict[str, str]:
    """
    Build subject, HTML and text bodies for an order e-mail

    The copy depends on the order status (confirmation, shipped...).
    """
    subject_tpl, headline, message = ORDER_EMAIL_COPY.get(order.status.value, DEFAULT_COPY)
    subject = subject_tpl.format(number=order.order_number)
    symbol = _currency_symbol(order.currency)

    rows_html = []
    rows_text = []
    for item in order.items:
        name = item.product_name or "Item"
        if item.variant_name:
            name = f"{name} ({item.variant_name})"
        line_total = _amount(item.line_total)
        rows_html.append(
            "<tr>"
            f"<td style=\"padding:8px 0\">{html.escape(name)}</td>"
            f"<td style=\"padding:8px 0;text-align:center\">{item.quantity}</td>"
            f"<td style=\"padding:8px 0;text-align:right\">{symbol}{line_total}</td>"
            "</tr>"
        )
        rows_text.append(f"- {name} x{item.quantity}: {symbol}{line_total}")

    summary = [("Subtotal", order.subtotal)]
    if order.discount_amount:
        label = f"Discount ({order.coupon_code})" if order.coupon_code else "Discount"
        summary.append((label, -order.discount_amount))
    summary.append(("Shipping", order.shipping_amount))
    summary_html = "".join(
        f"<tr><td colspan=\"2\" style=\"padding:4px 0\">{html.escape(label)}</td>"
        f"<td style=\"padding:4px 0;text-align:right\">{symbol}{_amount(value)}</td></tr>"
        for label, value in summary if value is not None
    )
    summary_text = [f"{label}: {symbol}{_amount(value)}" for label, value in summary if value is not None]

    tracking_html = ""
    tracking_text = []
    if order.tracking_number:
        tracking_html = f"<p>Tracking number: <strong>{html.escape(order.tracking_number)}</strong></p>"
        tracking_text = [f"Tracking number: {order.tracking_number}"]

    html_body = f"""
        <div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto">
            <h1>{html.escape(headline)}</h1>
            <p>{html.escape(message)}</p>
            <p>Order <strong>#{html.escape(order.order_number)}</strong></p>
            {tracking_html}
            <table style="width:100%;border-collapse:collapse">
                <tr><th style="text-align:left">Item</th><th>Qty</th><th style="text-align:right">Total</th></tr>
                {''.join(rows_html)}
                {summary_html}
                <tr><td colspan="2" style="padding:8px 0"><strong>Total</strong></td>
                    <td style="padding:8px 0;text-align:right"><strong>{symbol}{_amount(order.total_amount)}</strong></td></tr>
            </table>
        </div>
    """

    text_body = "\n".join(
        [headline, message, "", f"Order #{order.order_number}", *tracking_text, ""]
        + rows_text
        + [""]
        + summary_text
        + [f"Total: {symbol}{_amount(order.total_amount)}"]
    )

    return {"subject": subject, "html": html_body, "text": text_body}


class EmailService:

    def __init__(self, connector: Optional[ResendConnector] = None, user_repository: Optional[UserRepository] = None):
        self.connector = connector or ResendConnector()
        self.user_repository = user_repository or UserRepository()

    async def send_order_email(self, order: Order, email: Optional[str] = None) -> bool:
        """
        Send the e-mail matching the order's status to its owner

        Never raises; returns False when nothing was sent.
        """
        try:
            recipient = email or self.user_repository.find_email(order.user_id)
            if not recipient:
                logger.warning(f"No e-mail on file for order {order.order_number}; skipping")
                return False

            content = render_order_email(order)
            return await self.connector.send(
                [recipient],
                content["subject"],
                content["html"],
                content["text"],
                tags={"category": "order", "status": order.status.value},
            )
        except Exception as e:
            logger.error(f"Failed to send e-mail for order {order.order_number}: {e}")
            return False

    async def broadcast(self, subject: str, html_content: str, test_email: Optional[str] = None) -> Dict[str, int]:
        """
        Send a newsletter to active subscribers in batches of 50 (bcc)

        Args:
            test_email: send a single [TEST] copy to this address instead

        Returns:
            {"recipients": n, "batches_sent": n, "batches_failed": n}
        """
        text_content = html.unescape(TAG_PATTERN.sub("", html_content)).strip()

        if test_email:
            sent = await self.connector.send([test_email], f"[TEST] {subject}", html_content, text_content)
            return {"recipients": 1, "batches_sent": int(sent), "batches_failed": int(not sent)}

        emails = [e for e in dedupe_emails(self.user_repository.find_subscriber_emails()) if "@" in e]
        if not emails:
            logger.info("Broadcast skipped: no active subscribers")
            return {"recipients": 0, "batches_sent": 0, "batches_failed": 0}

        sender_address = parseaddr(self.connector.sender)[1] or self.connector.sender
        sent = failed = 0
        for batch in _batches(emails, BROADCAST_BATCH_SIZE):
            try:
                delivered = await self.connector.send([sender_address], subject, html_content, text_content, bcc=batch)
            except httpx.HTTPError as e:
                logger.error(f"Broadcast batch of {len(batch)} failed: {e}")
                delivered = False

            if delivered:
                sent += 1
            else:
                failed += 1

        logger.info(f"Broadcast '{subject}' to {len(emails)} subscribers: {sent} batches sent, {failed} failed")
        return {"recipients": len(emails), "batches_sent": sent, "batches_failed": failed}


def _batches(items: List[str], size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]
