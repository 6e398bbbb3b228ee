"""
Settings Repository - shipping columns of support_settings

support_settings is a single-row table shared with the support pages;
only shipping_cost and free_shipping_threshold are read or written here.
"""
from decimal import Decimal
from typing import Optional, Tuple

from storefront.core.database import get_db_connection_dict


class SettingsRepository:

    def get_shipping(self) -> Tuple[Optional[Decimal], Optional[Decimal]]:
        """
        Returns:
            (shipping_cost, free_shipping_threshold); (None, None) when no row exists
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT shipping_cost, free_shipping_threshold
                FROM support_settings
                ORDER BY updated_at DESC NULLS LAST
                LIMIT 1
            """)
            row = cursor.fetchone()
            if not row:
                return None, None
            return row['shipping_cost'], row['free_shipping_threshold']

        finally:
            cursor.close()
            conn.close()

    def update_shipping(self, shipping_cost: Decimal, free_shipping_threshold: Decimal):
        """Update the settings row, creating it when the table is empty"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE support_settings
                SET shipping_cost = %s, free_shipping_threshold = %s, updated_at = NOW()
            """, (shipping_cost, free_shipping_threshold))

            if cursor.rowcount == 0:
                cursor.execute("""
                    INSERT INTO support_settings (shipping_cost, free_shipping_threshold)
                    VALUES (%s, %s)
                """, (shipping_cost, free_shipping_threshold))

            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()
