"""
Product Repository - Data Access Layer for the catalog

Handles catalog queries (products, product_variants, categories) and
returns Product domain models.
"""
from typing import List, Optional, Tuple

from storefront.domain.product import Product, ProductVariant
from storefront.core.database import get_db_connection_dict, row_to_dict


PRODUCT_COLUMNS = """
    p.id, p.name, p.sku, p.short_description, p.category_id,
    p.base_price, p.discount_price, p.stock_quantity, p.is_active, p.created_at
"""


class ProductRepository:
    """
    Repository for Product data access

    All SQL queries for the catalog are centralized here.
    """

    def find_by_id(self, product_id: str) -> Optional[Product]:
        """
        Find an active product with its active variants

        Returns:
            Product or None if not found / inactive
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products p
                WHERE p.id = %s AND p.is_active = TRUE
            """, (product_id,))

            row = cursor.fetchone()
            if not row:
                return None

            cursor.execute("""
                SELECT
                    id, product_id, variant_name, variant_type, sku,
                    absolute_price, price_adjustment, stock_quantity, is_active
                FROM product_variants
                WHERE product_id = %s AND is_active = TRUE
                ORDER BY variant_name
            """, (product_id,))
            variants = [ProductVariant(**row_to_dict(v)) for v in cursor.fetchall()]

            product = row_to_dict(row)
            product['variants'] = variants
            return Product(**product)

        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        category_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 24,
        offset: int = 0
    ) -> Tuple[List[Product], int]:
        """
        List active products

        Args:
            category_id: Filter by category
            search: Matches name or SKU (case-insensitive)
            limit / offset: Pagination

        Returns:
            Tuple of (list of products, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["p.is_active = TRUE"]
            params = []

            if category_id:
                conditions.append("p.category_id = %s")
                params.append(category_id)

            if search:
                conditions.append("(p.name ILIKE %s OR p.sku ILIKE %s)")
                search_param = f"%{search}%"
                params.extend([search_param, search_param])

            where_clause = " AND ".join(conditions)

            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM products p
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products p
                WHERE {where_clause}
                ORDER BY p.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            products = [Product(**row_to_dict(row)) for row in cursor.fetchall()]
            return products, total

        finally:
            cursor.close()
            conn.close()

    def get_stock(self, product_id: str, variant_id: Optional[str] = None) -> Optional[int]:
        """
        Units available for a product, or for the variant when given

        Returns:
            Stock quantity, or None when the product/variant doesn't exist
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if variant_id:
                cursor.execute("""
                    SELECT stock_quantity
                    FROM product_variants
                    WHERE id = %s AND product_id = %s
                """, (variant_id, product_id))
            else:
                cursor.execute("SELECT stock_quantity FROM products WHERE id = %s", (product_id,))

            row = cursor.fetchone()
            if not row:
                return None
            return row['stock_quantity'] or 0

        finally:
            cursor.close()
            conn.close()

    # ------------------------------------------------------------------
    # CSV import
    # ------------------------------------------------------------------

    def upsert_category(self, cursor, name: str) -> str:
        """Return the category id for name, creating it when missing"""
        cursor.execute("SELECT id FROM categories WHERE LOWER(name) = LOWER(%s)", (name,))
        row = cursor.fetchone()
        if row:
            return str(row['id'])

        cursor.execute("""
            INSERT INTO categories (name, is_active)
            VALUES (%s, TRUE)
            RETURNING id
        """, (name,))
        return str(cursor.fetchone()['id'])

    def upsert_product(self, cursor, sku: str, name: str, category_id: Optional[str],
                       base_price, discount_price, stock_quantity: int) -> str:
        """Insert or update a product keyed by SKU; returns its id"""
        cursor.execute("""
            INSERT INTO products (sku, name, category_id, base_price, discount_price, stock_quantity, is_active)
            VALUES (%s, %s, %s, %s, %s, %s, TRUE)
            ON CONFLICT (sku) DO UPDATE SET
                name = EXCLUDED.name,
                category_id = EXCLUDED.category_id,
                base_price = EXCLUDED.base_price,
                discount_price = COALESCE(EXCLUDED.discount_price, products.discount_price),
                stock_quantity = EXCLUDED.stock_quantity,
                updated_at = NOW()
            RETURNING id
        """, (sku, name, category_id, base_price, discount_price, stock_quantity))
        return str(cursor.fetchone()['id'])

    def upsert_variant(self, cursor, product_id: str, variant_name: str, variant_type: Optional[str],
                       absolute_price, stock_quantity: int) -> str:
        """Insert or update a variant keyed by (product, variant name)"""
        cursor.execute("""
            SELECT id FROM product_variants
            WHERE product_id = %s AND variant_name = %s
        """, (product_id, variant_name))
        row = cursor.fetchone()

        if row:
            cursor.execute("""
                UPDATE product_variants
                SET variant_type = %s, absolute_price = %s, stock_quantity = %s, is_active = TRUE
                WHERE id = %s
            """, (variant_type, absolute_price, stock_quantity, row['id']))
            return str(row['id'])

        cursor.execute("""
            INSERT INTO product_variants (product_id, variant_name, variant_type, absolute_price, stock_quantity, is_active)
            VALUES (%s, %s, %s, %s, %s, TRUE)
            RETURNING id
        """, (product_id, variant_name, variant_type, absolute_price, stock_quantity))
        return str(cursor.fetchone()['id'])
