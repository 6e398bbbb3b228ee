"""
Order Service
Order history for shoppers and order management for admins

Admin exports are Excel workbooks built with pandas + openpyxl:
an Orders sheet (one row per order) and an Items sheet (one row per line).
"""
import io
import logging
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill

from storefront.core.errors import NotFoundError
from storefront.domain.order import Order, OrderStatusUpdate
from storefront.repositories.order_repository import OrderRepository
from storefront.services.email_service import EmailService

logger = logging.getLogger(__name__)


ORDER_COLUMNS = [
    "Order Number", "Date", "Customer Email", "Status", "Payment Status",
    "Subtotal", "Discount", "Coupon", "Shipping", "Total", "Currency",
    "City", "State", "Pincode", "Tracking Number", "Razorpay Payment ID",
]

ITEM_COLUMNS = ["Order Number", "Product", "Variant", "Quantity", "Unit Price", "Line Total"]

MONEY_COLUMNS = {"Subtotal", "Discount", "Shipping", "Total", "Unit Price", "Line Total"}


def _float(value) -> Optional[float]:
    return float(value) if value is not None else None


def orders_to_frames(orders: List[Order]) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Flatten orders into (orders frame, items frame)"""
    order_rows = []
    item_rows = []

    for order in orders:
        address = order.shipping_address or {}
        order_rows.append({
            "Order Number": order.order_number,
            "Date": order.created_at.replace(tzinfo=None) if order.created_at else None,
            "Customer Email": order.customer_email,
            "Status": order.status.value,
            "Payment Status": order.payment_status.value,
            "Subtotal": _float(order.subtotal),
            "Discount": _float(order.discount_amount),
            "Coupon": order.coupon_code,
            "Shipping": _float(order.shipping_amount),
            "Total": _float(order.total_amount),
            "Currency": order.currency,
            "City": address.get("city"),
            "State": address.get("state"),
            "Pincode": address.get("pincode"),
            "Tracking Number": order.tracking_number,
            "Razorpay Payment ID": order.razorpay_payment_id,
        })
        for item in order.items:
            item_rows.append({
                "Order Number": order.order_number,
                "Product": item.product_name or item.product_id,
                "Variant": item.variant_name,
                "Quantity": item.quantity,
                "Unit Price": float(item.price),
                "Line Total": float(item.line_total),
            })

    return (
        pd.DataFrame(order_rows, columns=ORDER_COLUMNS),
        pd.DataFrame(item_rows, columns=ITEM_COLUMNS),
    )


def _style_sheet(worksheet, columns: List[str]):
    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    header_font = Font(color="FFFFFF", bold=True)

    for col_num, name in enumerate(columns, 1):
        cell = worksheet.cell(row=1, column=col_num)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal='center', vertical='center')

        letter = cell.column_letter
        worksheet.column_dimensions[letter].width = max(14, len(name) + 4)
        if name in MONEY_COLUMNS:
            for row in worksheet.iter_rows(min_row=2, min_col=col_num, max_col=col_num):
                row[0].number_format = '#,##0.00'

    worksheet.freeze_panes = 'A2'


def build_orders_workbook(orders: List[Order]) -> io.BytesIO:
    orders_df, items_df = orders_to_frames(orders)

    excel_file = io.BytesIO()
    with pd.ExcelWriter(excel_file, engine="openpyxl") as writer:
        orders_df.to_excel(writer, sheet_name="Orders", index=False)
        items_df.to_excel(writer, sheet_name="Items", index=False)
        _style_sheet(writer.sheets["Orders"], ORDER_COLUMNS)
        _style_sheet(writer.sheets["Items"], ITEM_COLUMNS)

    excel_file.seek(0)
    return excel_file


class OrderService:

    def __init__(self, repository: Optional[OrderRepository] = None, email_service: Optional[EmailService] = None):
        self.repository = repository or OrderRepository()
        self.email_service = email_service or EmailService()

    def list_user_orders(self, user_id: str, limit: int = 50, offset: int = 0) -> List[Order]:
        return self.repository.find_by_user(user_id, limit=limit, offset=offset)

    def get_user_order(self, user_id: str, order_id: str) -> Order:
        order = self.repository.find_by_id(order_id, user_id=user_id)
        if order is None:
            raise NotFoundError("Order not found", code="order.not_found")
        return order

    def list_orders(self, status: Optional[str] = None, payment_status: Optional[str] = None,
                    search: Optional[str] = None, limit: int = 50, offset: int = 0) -> Tuple[List[Order], int]:
        return self.repository.find_all(
            status=status, payment_status=payment_status, search=search, limit=limit, offset=offset
        )

    async def update_status(self, order_id: str, update: OrderStatusUpdate, notify: bool = True) -> Order:
        """
        Admin fulfilment update; the shopper gets the matching status e-mail
        """
        current = self.repository.find_by_id(order_id)
        if current is None:
            raise NotFoundError("Order not found", code="order.not_found")

        order = self.repository.update_status(
            order_id,
            update.status.value,
            tracking_number=update.tracking_number,
            payment_status=update.payment_status.value if update.payment_status else None,
        )
        if order is None:
            raise NotFoundError("Order not found", code="order.not_found")

        logger.info(f"Order {order.order_number}: {current.status.value} -> {order.status.value}")

        if notify and order.status != current.status:
            await self.email_service.send_order_email(order)
        return order

    def export_orders(self, status: Optional[str] = None, payment_status: Optional[str] = None,
                      search: Optional[str] = None, limit: int = 5000) -> io.BytesIO:
        orders, total = self.repository.find_all(
            status=status, payment_status=payment_status, search=search, limit=limit, offset=0
        )
        if total > len(orders):
            logger.warning(f"Order export truncated: {len(orders)} of {total} orders")
        return build_orders_workbook(orders)

    @staticmethod
    def summarize(orders: List[Order]) -> Dict[str, Any]:
        """Counts by status for the admin list header"""
        counts: Dict[str, int] = {}
        for order in orders:
            counts[order.status.value] = counts.get(order.status.value, 0) + 1
        return counts
