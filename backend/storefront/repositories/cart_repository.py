"""
Cart Repository - Data Access Layer for cart_items

Cart lines are returned as CartItem domain models with product, variant
and bundle data joined in, ready for pricing.
"""
import logging
from typing import List, Optional

from storefront.domain.cart import Bundle, CartItem, CartProduct, CartVariant
from storefront.core.database import get_db_connection_dict, row_to_dict

logger = logging.getLogger(__name__)


def _cart_item_from_row(row: dict) -> CartItem:
    variant = None
    if row.get('variant_id'):
        variant = CartVariant(
            id=row['variant_id'],
            variant_name=row.get('variant_name'),
            absolute_price=row.get('absolute_price'),
            price_adjustment=row.get('price_adjustment'),
            stock_quantity=row.get('variant_stock') or 0,
        )

    bundle = None
    if row.get('bundle_id') and row.get('bundle_price_type'):
        bundle = Bundle(
            id=row['bundle_id'],
            name=row.get('bundle_name'),
            price_type=row['bundle_price_type'],
            price_value=row.get('bundle_price_value') or 0,
        )

    return CartItem(
        id=row['id'],
        quantity=row['quantity'],
        product=CartProduct(
            id=row['product_id'],
            name=row['product_name'],
            base_price=row['base_price'],
            discount_price=row.get('discount_price'),
            stock_quantity=row.get('product_stock') or 0,
            category_id=row.get('category_id'),
        ),
        variant=variant,
        bundle=bundle,
    )


class CartRepository:
    """
    Repository for cart_items

    Standalone lines are unique per (user, product, variant); bundle lines
    are kept separate per bundle.
    """

    def find_by_user(self, user_id: str) -> List[CartItem]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    ci.id, ci.product_id, ci.variant_id, ci.bundle_id, ci.quantity,
                    p.name as product_name, p.base_price, p.discount_price,
                    p.stock_quantity as product_stock, p.category_id,
                    v.variant_name, v.absolute_price, v.price_adjustment,
                    v.stock_quantity as variant_stock,
                    b.name as bundle_name, b.price_type as bundle_price_type,
                    b.price_value as bundle_price_value
                FROM cart_items ci
                JOIN products p ON ci.product_id = p.id
                LEFT JOIN product_variants v ON ci.variant_id = v.id
                LEFT JOIN bundles b ON ci.bundle_id = b.id
                WHERE ci.user_id = %s
                ORDER BY ci.created_at, ci.id
            """, (user_id,))

            return [_cart_item_from_row(row_to_dict(row)) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def upsert_standalone(self, user_id: str, product_id: str, variant_id: Optional[str], quantity: int) -> str:
        """
        Set the quantity of the standalone line for (user, product, variant),
        creating it when missing. Returns the line id.
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id FROM cart_items
                WHERE user_id = %s
                  AND product_id = %s
                  AND variant_id IS NOT DISTINCT FROM %s
                  AND bundle_id IS NULL
                LIMIT 1
            """, (user_id, product_id, variant_id))
            existing = cursor.fetchone()

            if existing:
                cursor.execute("""
                    UPDATE cart_items SET quantity = %s, updated_at = NOW()
                    WHERE id = %s
                    RETURNING id
                """, (quantity, existing['id']))
            else:
                cursor.execute("""
                    INSERT INTO cart_items (user_id, product_id, variant_id, bundle_id, quantity)
                    VALUES (%s, %s, %s, NULL, %s)
                    RETURNING id
                """, (user_id, product_id, variant_id, quantity))

            line_id = str(cursor.fetchone()['id'])
            conn.commit()
            return line_id

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def insert_bundle_item(self, user_id: str, product_id: str, variant_id: Optional[str],
                           bundle_id: str, quantity: int) -> str:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO cart_items (user_id, product_id, variant_id, bundle_id, quantity)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id
            """, (user_id, product_id, variant_id, bundle_id, quantity))
            line_id = str(cursor.fetchone()['id'])
            conn.commit()
            return line_id

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def add_bundle(self, user_id: str, bundle_id: str, members: List[dict]) -> int:
        """
        Add every member of a bundle in one transaction

        Members already in the cart for this bundle get their quantity
        increased; the rest are inserted.

        Args:
            members: dicts with product_id, variant_id, quantity

        Returns:
            Number of lines touched
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, product_id, variant_id, quantity
                FROM cart_items
                WHERE user_id = %s AND bundle_id = %s
            """, (user_id, bundle_id))
            existing = {
                (row['product_id'], row['variant_id']): row
                for row in (row_to_dict(r) for r in cursor.fetchall())
            }

            for member in members:
                key = (member['product_id'], member.get('variant_id'))
                if key in existing:
                    cursor.execute("""
                        UPDATE cart_items SET quantity = quantity + %s, updated_at = NOW()
                        WHERE id = %s
                    """, (member['quantity'], existing[key]['id']))
                else:
                    cursor.execute("""
                        INSERT INTO cart_items (user_id, product_id, variant_id, bundle_id, quantity)
                        VALUES (%s, %s, %s, %s, %s)
                    """, (user_id, member['product_id'], member.get('variant_id'), bundle_id, member['quantity']))

            conn.commit()
            return len(members)

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def update_quantity(self, user_id: str, item_id: str, quantity: int) -> bool:
        """Returns False when the line doesn't belong to the user"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE cart_items SET quantity = %s, updated_at = NOW()
                WHERE id = %s AND user_id = %s
            """, (quantity, item_id, user_id))
            updated = cursor.rowcount > 0
            conn.commit()
            return updated

        finally:
            cursor.close()
            conn.close()

    def remove(self, user_id: str, item_id: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM cart_items WHERE id = %s AND user_id = %s", (item_id, user_id))
            removed = cursor.rowcount > 0
            conn.commit()
            return removed

        finally:
            cursor.close()
            conn.close()

    def clear(self, user_id: str) -> int:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM cart_items WHERE user_id = %s", (user_id,))
            removed = cursor.rowcount
            conn.commit()
            logger.info(f"Cleared {removed} cart items for user {user_id}")
            return removed

        finally:
            cursor.close()
            conn.close()
