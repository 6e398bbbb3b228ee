"""
Unit tests for EmailService and order e-mail rendering
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx

from storefront.services.email_service import EmailService, render_order_email


class TestRenderOrderEmail:

    def test_confirmation_copy(self, make_order):
        content = render_order_email(make_order(status="order_created"))

        assert content["subject"] == "Order Confirmation #ORD-1718452800000"
        assert "Order Confirmed" in content["html"]
        assert "Mug x1: ₹499.00" in content["text"]
        assert "Total: ₹549.00" in content["text"]

    def test_shipped_includes_tracking(self, make_order):
        content = render_order_email(make_order(status="shipped", tracking_number="TRK-42"))

        assert content["subject"] == "Order #ORD-1718452800000 Shipped!"
        assert "TRK-42" in content["html"]
        assert "Tracking number: TRK-42" in content["text"]

    def test_discount_line_names_coupon(self, make_order):
        content = render_order_email(make_order(discount_amount=50, coupon_code="SAVE10"))
        assert "Discount (SAVE10): ₹-50.00" in content["text"]

    def test_item_names_escaped(self, make_order):
        order = make_order()
        order.items[0].product_name = "<b>Mug</b>"

        content = render_order_email(order)

        assert "&lt;b&gt;Mug&lt;/b&gt;" in content["html"]


class TestSendOrderEmail:

    def test_uses_profile_email(self, make_order):
        connector = MagicMock()
        connector.send = AsyncMock(return_value=True)
        users = MagicMock()
        users.find_email.return_value = "shopper@example.com"
        service = EmailService(connector=connector, user_repository=users)

        sent = asyncio.run(service.send_order_email(make_order(status="delivered")))

        assert sent is True
        args, kwargs = connector.send.call_args
        assert args[0] == ["shopper@example.com"]
        assert args[1] == "Order #ORD-1718452800000 Delivered"
        assert kwargs["tags"] == {"category": "order", "status": "delivered"}

    def test_no_email_on_file(self, make_order):
        connector = MagicMock()
        connector.send = AsyncMock()
        users = MagicMock()
        users.find_email.return_value = None
        service = EmailService(connector=connector, user_repository=users)

        assert asyncio.run(service.send_order_email(make_order())) is False
        connector.send.assert_not_awaited()

    def test_failures_are_swallowed(self, make_order):
        connector = MagicMock()
        connector.send = AsyncMock(side_effect=httpx.ConnectError("down"))
        service = EmailService(connector=connector, user_repository=MagicMock())

        assert asyncio.run(service.send_order_email(make_order(), email="a@b.com")) is False


class TestBroadcast:

    def _service(self, subscribers, send_result=True):
        connector = MagicMock()
        connector.sender = "Store <news@store.example>"
        connector.send = AsyncMock(return_value=send_result)
        users = MagicMock()
        users.find_subscriber_emails.return_value = subscribers
        return EmailService(connector=connector, user_repository=users), connector

    def test_batches_of_fifty_in_bcc(self):
        subscribers = [f"user{i}@example.com" for i in range(120)]
        service, connector = self._service(subscribers)

        result = asyncio.run(service.broadcast("June drop", "<p>New mugs</p>"))

        assert result == {"recipients": 120, "batches_sent": 3, "batches_failed": 0}
        assert connector.send.await_count == 3
        first_args, first_kwargs = connector.send.call_args_list[0]
        assert first_args[0] == ["news@store.example"]
        assert first_args[3] == "New mugs"
        assert len(first_kwargs["bcc"]) == 50
        assert len(connector.send.call_args_list[2][1]["bcc"]) == 20

    def test_duplicates_and_invalid_dropped(self):
        service, _ = self._service(["A@example.com", "a@example.com", "", "not-an-email"])

        result = asyncio.run(service.broadcast("Hi", "<p>Hi</p>"))

        assert result["recipients"] == 1

    def test_no_subscribers(self):
        service, connector = self._service([])

        result = asyncio.run(service.broadcast("Hi", "<p>Hi</p>"))

        assert result == {"recipients": 0, "batches_sent": 0, "batches_failed": 0}
        connector.send.assert_not_awaited()

    def test_failed_batches_counted(self):
        service, connector = self._service([f"u{i}@example.com" for i in range(60)])
        connector.send.side_effect = [True, httpx.ConnectError("down")]

        result = asyncio.run(service.broadcast("Hi", "<p>Hi</p>"))

        assert result == {"recipients": 60, "batches_sent": 1, "batches_failed": 1}

    def test_test_email_only(self):
        service, connector = self._service(["a@example.com"])

        result = asyncio.run(service.broadcast("June drop", "<p>x</p>", test_email="me@store.example"))

        assert result == {"recipients": 1, "batches_sent": 1, "batches_failed": 0}
        args = connector.send.call_args[0]
        assert args[0] == ["me@store.example"]
        assert args[1] == "[TEST] June drop"
