"""
Order Repository - Data Access Layer for Orders

Handles orders, order_items and payment_transactions, and the inventory
functions (reserve_inventory / release_inventory) that guard stock.
Returns Order domain models.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from psycopg2.extras import Json

from storefront.domain.order import Order, OrderItem, OrderStatus, PaymentStatus, TransactionStatus
from storefront.core.database import get_db_connection_dict, row_to_dict
from storefront.core.errors import CouponError


ORDER_FIELDS = [
    "id", "user_id", "order_number", "total_amount", "subtotal",
    "shipping_amount", "discount_amount", "coupon_code", "currency",
    "shipping_address", "status", "payment_status",
    "razorpay_order_id", "razorpay_payment_id", "tracking_number",
    "created_at", "updated_at",
]

ORDER_COLUMNS = ", ".join(f"o.{field}" for field in ORDER_FIELDS)


class InventoryReservationError(Exception):
    """reserve_inventory refused one or more lines"""


def inventory_payload(items: List[OrderItem]) -> List[Dict[str, Any]]:
    """jsonb argument of reserve_inventory / release_inventory"""
    return [
        {'product_id': item.product_id, 'variant_id': item.variant_id, 'quantity': item.quantity}
        for item in items
    ]


class OrderRepository:
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    Returns Order domain models with their items.
    """

    def _attach_items(self, cursor, order_rows: List[dict]) -> List[Order]:
        """Load items for all orders in one query"""
        if not order_rows:
            return []

        order_ids = [row['id'] for row in order_rows]
        cursor.execute("""
            SELECT
                oi.id, oi.order_id, oi.product_id, oi.variant_id, oi.quantity, oi.price,
                p.name as product_name,
                v.variant_name
            FROM order_items oi
            LEFT JOIN products p ON oi.product_id = p.id
            LEFT JOIN product_variants v ON oi.variant_id = v.id
            WHERE oi.order_id::text = ANY(%s)
            ORDER BY oi.id
        """, (order_ids,))

        items_by_order: Dict[str, List[OrderItem]] = {}
        for item in cursor.fetchall():
            item = row_to_dict(item)
            items_by_order.setdefault(item['order_id'], []).append(OrderItem(**item))

        orders = []
        for row in order_rows:
            row['items'] = items_by_order.get(row['id'], [])
            orders.append(Order(**row))
        return orders

    def find_by_id(self, order_id: str, user_id: Optional[str] = None) -> Optional[Order]:
        """
        Find order by ID with items

        Args:
            order_id: Order ID
            user_id: When given, only the owner's order matches

        Returns:
            Order or None if not found
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["o.id = %s"]
            params: List[Any] = [order_id]
            if user_id:
                conditions.append("o.user_id = %s")
                params.append(user_id)

            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE {' AND '.join(conditions)}
            """, params)
            row = cursor.fetchone()
            if not row:
                return None

            return self._attach_items(cursor, [row_to_dict(row)])[0]

        finally:
            cursor.close()
            conn.close()

    def find_by_user(self, user_id: str, limit: int = 50, offset: int = 0) -> List[Order]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE o.user_id = %s
                ORDER BY o.created_at DESC
                LIMIT %s OFFSET %s
            """, (user_id, limit, offset))
            rows = [row_to_dict(row) for row in cursor.fetchall()]
            return self._attach_items(cursor, rows)

        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        """
        Find orders with filters (admin)

        Args:
            status: Filter by order status
            payment_status: Filter by payment status
            search: Order number or customer e-mail (ILIKE)
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of orders, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = []
            params: List[Any] = []

            if status:
                conditions.append("o.status = %s")
                params.append(status)

            if payment_status:
                conditions.append("o.payment_status = %s")
                params.append(payment_status)

            if search:
                conditions.append("(o.order_number ILIKE %s OR pr.email ILIKE %s)")
                search_param = f"%{search}%"
                params.extend([search_param, search_param])

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM orders o
                LEFT JOIN profiles pr ON o.user_id = pr.id
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}, pr.email as customer_email
                FROM orders o
                LEFT JOIN profiles pr ON o.user_id = pr.id
                WHERE {where_clause}
                ORDER BY o.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            rows = [row_to_dict(row) for row in cursor.fetchall()]

            return self._attach_items(cursor, rows), total

        finally:
            cursor.close()
            conn.close()

    def count_pending_since(self, user_id: str, since: datetime) -> int:
        """Pending orders created by the user after `since`"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT COUNT(*) as total
                FROM orders
                WHERE user_id = %s AND status = %s AND created_at >= %s
            """, (user_id, OrderStatus.PENDING.value, since))
            return cursor.fetchone()['total']

        finally:
            cursor.close()
            conn.close()

    def find_stale_pending(self, cutoff: datetime) -> List[Order]:
        """Pending orders created before `cutoff`"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE o.status = %s AND o.created_at < %s
                ORDER BY o.created_at
            """, (OrderStatus.PENDING.value, cutoff))
            rows = [row_to_dict(row) for row in cursor.fetchall()]
            return self._attach_items(cursor, rows)

        finally:
            cursor.close()
            conn.close()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_pending(self, order: Dict[str, Any], items: List[OrderItem],
                       coupon_repository=None) -> Order:
        """
        Reserve stock, insert the order and its items, and count the coupon
        redemption, all in one transaction.

        Args:
            order: order columns (user_id, order_number, amounts, coupon_code, currency, shipping_address)
            items: priced order lines
            coupon_repository: used to increment used_count when order has a coupon_code

        Raises:
            InventoryReservationError: when stock cannot be reserved
            CouponError: when the coupon hit its usage_limit since it was checked
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            try:
                cursor.execute("SELECT reserve_inventory(%s::jsonb)", (Json(inventory_payload(items)),))
            except Exception as e:
                raise InventoryReservationError(str(e)) from e

            cursor.execute(f"""
                INSERT INTO orders (
                    user_id, order_number, total_amount, subtotal, shipping_amount,
                    discount_amount, coupon_code, currency, shipping_address,
                    status, payment_status
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {", ".join(ORDER_FIELDS)}
            """, (
                order['user_id'], order['order_number'], order['total_amount'],
                order.get('subtotal'), order.get('shipping_amount'), order.get('discount_amount'),
                order.get('coupon_code'), order.get('currency', 'INR'),
                Json(order.get('shipping_address')),
                OrderStatus.PENDING.value, PaymentStatus.PENDING.value,
            ))
            created = row_to_dict(cursor.fetchone())

            saved_items = []
            for item in items:
                cursor.execute("""
                    INSERT INTO order_items (order_id, product_id, variant_id, quantity, price)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING id
                """, (created['id'], item.product_id, item.variant_id, item.quantity, item.price))
                item_id = str(cursor.fetchone()['id'])
                saved_items.append(item.model_copy(update={'id': item_id, 'order_id': created['id']}))

            if order.get('coupon_code') and coupon_repository is not None:
                if not coupon_repository.increment_usage(cursor, order['coupon_code']):
                    raise CouponError(
                        "This coupon has reached its usage limit",
                        code="coupon.usage_limit_reached",
                    )

            conn.commit()

            created['items'] = saved_items
            return Order(**created)

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def release_inventory(self, items: List[OrderItem]):
        """Return reserved stock; errors propagate to the caller"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT release_inventory(%s::jsonb)", (Json(inventory_payload(items)),))
            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def set_razorpay_order(self, order_id: str, razorpay_order_id: str):
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE orders SET razorpay_order_id = %s, updated_at = NOW()
                WHERE id = %s
            """, (razorpay_order_id, order_id))
            conn.commit()

        finally:
            cursor.close()
            conn.close()

    def mark_cancelled(self, order_id: str) -> bool:
        """
        pending -> cancelled / failed

        Returns:
            False when the order was no longer pending
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE orders
                SET status = %s, payment_status = %s, updated_at = NOW()
                WHERE id = %s AND status = %s
            """, (OrderStatus.CANCELLED.value, PaymentStatus.FAILED.value, order_id, OrderStatus.PENDING.value))
            cancelled = cursor.rowcount > 0
            conn.commit()
            return cancelled

        finally:
            cursor.close()
            conn.close()

    def mark_paid(self, order_id: str, user_id: str, razorpay_payment_id: str) -> bool:
        """
        Payment verified: order_created / success. Only the owner's order.

        Returns:
            False when no order of this user matched
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE orders
                SET status = %s, payment_status = %s, razorpay_payment_id = %s, updated_at = NOW()
                WHERE id = %s AND user_id = %s
            """, (
                OrderStatus.ORDER_CREATED.value, PaymentStatus.SUCCESS.value,
                razorpay_payment_id, order_id, user_id,
            ))
            updated = cursor.rowcount > 0
            conn.commit()
            return updated

        finally:
            cursor.close()
            conn.close()

    def update_status(
        self,
        order_id: str,
        status: str,
        tracking_number: Optional[str] = None,
        payment_status: Optional[str] = None
    ) -> Optional[Order]:
        """Admin status / tracking update"""
        assignments = ["status = %s"]
        params: List[Any] = [status]
        if tracking_number is not None:
            assignments.append("tracking_number = %s")
            params.append(tracking_number)
        if payment_status is not None:
            assignments.append("payment_status = %s")
            params.append(payment_status)

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE orders SET {', '.join(assignments)}, updated_at = NOW()
                WHERE id = %s
                RETURNING id
            """, params + [order_id])
            row = cursor.fetchone()
            conn.commit()

        finally:
            cursor.close()
            conn.close()

        if not row:
            return None
        return self.find_by_id(order_id)

    # ------------------------------------------------------------------
    # Payment transactions
    # ------------------------------------------------------------------

    def create_transaction(self, order_id: str, razorpay_order_id: str, amount, currency: str) -> str:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO payment_transactions (order_id, razorpay_order_id, amount, currency, status)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id
            """, (order_id, razorpay_order_id, amount, currency, TransactionStatus.CREATED.value))
            transaction_id = str(cursor.fetchone()['id'])
            conn.commit()
            return transaction_id

        finally:
            cursor.close()
            conn.close()

    def update_transactions(
        self,
        status: str,
        order_id: Optional[str] = None,
        razorpay_order_id: Optional[str] = None,
        razorpay_payment_id: Optional[str] = None,
        razorpay_signature: Optional[str] = None
    ) -> int:
        """
        Update the transactions of an order, matched by order_id or by
        razorpay_order_id
        """
        if not order_id and not razorpay_order_id:
            raise ValueError("order_id or razorpay_order_id is required")

        assignments = ["status = %s"]
        params: List[Any] = [status]
        if razorpay_payment_id is not None:
            assignments.append("razorpay_payment_id = %s")
            params.append(razorpay_payment_id)
        if razorpay_signature is not None:
            assignments.append("razorpay_signature = %s")
            params.append(razorpay_signature)

        if order_id:
            where_clause = "order_id = %s"
            params.append(order_id)
        else:
            where_clause = "razorpay_order_id = %s"
            params.append(razorpay_order_id)

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE payment_transactions SET {', '.join(assignments)}, updated_at = NOW()
                WHERE {where_clause}
            """, params)
            updated = cursor.rowcount
            conn.commit()
            return updated

        finally:
            cursor.close()
            conn.close()
