"""
Coupon Repository - Data Access Layer for coupons

Returns Coupon domain models. Usage accounting (used_count) is updated
here; increments run inside the create-order transaction.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from storefront.domain.coupon import Coupon
from storefront.core.database import get_db_connection_dict, row_to_dict


COUPON_COLUMNS = """
    id, code, description, discount_type, discount_value, min_order_value,
    max_discount_amount, usage_limit, used_count, is_active,
    valid_from, valid_until, allowed_emails, restricted_products,
    restricted_categories, created_at
"""

# Columns an admin may write
WRITABLE_COLUMNS = [
    'code', 'description', 'discount_type', 'discount_value', 'min_order_value',
    'max_discount_amount', 'usage_limit', 'is_active', 'valid_from', 'valid_until',
    'allowed_emails', 'restricted_products', 'restricted_categories',
]


def _db_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


class CouponRepository:
    """Repository for the coupons table"""

    def find_by_code(self, code: str) -> Optional[Coupon]:
        """Case-insensitive lookup (codes are stored upper-case)"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {COUPON_COLUMNS}
                FROM coupons
                WHERE code = %s
            """, (code.strip().upper(),))
            row = cursor.fetchone()
            return Coupon(**row_to_dict(row)) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, coupon_id: str) -> Optional[Coupon]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {COUPON_COLUMNS} FROM coupons WHERE id = %s", (coupon_id,))
            row = cursor.fetchone()
            return Coupon(**row_to_dict(row)) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_all(self, is_active: Optional[bool] = None, limit: int = 100, offset: int = 0) -> List[Coupon]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = []
            params: List[Any] = []
            if is_active is not None:
                conditions.append("is_active = %s")
                params.append(is_active)
            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute(f"""
                SELECT {COUPON_COLUMNS}
                FROM coupons
                WHERE {where_clause}
                ORDER BY created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            return [Coupon(**row_to_dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_active(self, limit: int = 10) -> List[Coupon]:
        """
        Reward wheel prize pool, newest first

        Only coupons anyone can redeem right now: not targeted at specific
        e-mails, started, unexpired and with redemptions left.
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {COUPON_COLUMNS}
                FROM coupons
                WHERE is_active = TRUE
                  AND (allowed_emails IS NULL OR cardinality(allowed_emails) = 0)
                  AND (valid_until IS NULL OR valid_until >= date_trunc('day', NOW()))
                  AND (valid_from IS NULL OR valid_from <= NOW())
                  AND (usage_limit IS NULL OR COALESCE(used_count, 0) < usage_limit)
                ORDER BY created_at DESC
                LIMIT %s
            """, (limit,))
            return [Coupon(**row_to_dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_public(self) -> List[Coupon]:
        """Active, unexpired coupons not targeted at specific shoppers"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {COUPON_COLUMNS}
                FROM coupons
                WHERE is_active = TRUE
                  AND (allowed_emails IS NULL OR cardinality(allowed_emails) = 0)
                  AND (valid_until IS NULL OR valid_until >= date_trunc('day', NOW()))
                  AND (valid_from IS NULL OR valid_from <= NOW())
                ORDER BY created_at DESC
            """)
            return [Coupon(**row_to_dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def code_exists(self, code: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT 1 FROM coupons WHERE code = %s", (code,))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    def create(self, data: Dict[str, Any]) -> Coupon:
        """
        Insert a coupon

        Args:
            data: column -> value; keys outside WRITABLE_COLUMNS are ignored
        """
        columns = [c for c in WRITABLE_COLUMNS if c in data]
        values = [_db_value(data[c]) for c in columns]

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO coupons ({', '.join(columns)})
                VALUES ({', '.join(['%s'] * len(columns))})
                RETURNING {COUPON_COLUMNS}
            """, values)
            row = cursor.fetchone()
            conn.commit()
            return Coupon(**row_to_dict(row))

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def update(self, coupon_id: str, data: Dict[str, Any]) -> Optional[Coupon]:
        """Partial update; returns None when the coupon doesn't exist"""
        columns = [c for c in WRITABLE_COLUMNS if c in data and c != 'code']
        if not columns:
            return self.find_by_id(coupon_id)

        assignments = ", ".join(f"{c} = %s" for c in columns)
        values = [_db_value(data[c]) for c in columns]

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                UPDATE coupons SET {assignments}, updated_at = NOW()
                WHERE id = %s
                RETURNING {COUPON_COLUMNS}
            """, values + [coupon_id])
            row = cursor.fetchone()
            conn.commit()
            return Coupon(**row_to_dict(row)) if row else None

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def delete(self, coupon_id: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM coupons WHERE id = %s", (coupon_id,))
            deleted = cursor.rowcount > 0
            conn.commit()
            return deleted

        finally:
            cursor.close()
            conn.close()

    # ------------------------------------------------------------------
    # Usage accounting
    # ------------------------------------------------------------------

    def increment_usage(self, cursor, code: str) -> bool:
        """
        Count one redemption; runs on the caller's transaction

        Returns:
            False when the coupon is missing or its usage_limit is already reached
        """
        cursor.execute("""
            UPDATE coupons
            SET used_count = COALESCE(used_count, 0) + 1
            WHERE code = %s
              AND (usage_limit IS NULL OR COALESCE(used_count, 0) < usage_limit)
        """, (code,))
        return cursor.rowcount > 0

    def restore_usage(self, code: str) -> bool:
        """Give back one redemption (order cancelled); never below zero"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE coupons
                SET used_count = GREATEST(COALESCE(used_count, 0) - 1, 0)
                WHERE code = %s
            """, (code,))
            restored = cursor.rowcount > 0
            conn.commit()
            return restored

        finally:
            cursor.close()
            conn.close()

