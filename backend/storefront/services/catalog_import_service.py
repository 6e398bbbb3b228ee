"""
Catalog Import Service
Upserts categories, products and variants from a CSV master list

Expected columns (case-insensitive):
    category, product, variant          required
    price, stock, sku, discount_price   optional

One row per variant. Products are keyed by SKU; when the CSV has no SKU
column one is derived from the category and product names, so re-running
the import updates instead of duplicating.
"""
import re
import logging
from decimal import Decimal
from typing import Dict, Optional

import pandas as pd

from storefront.core.database import get_db_connection_dict_with_retry
from storefront.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


REQUIRED_COLUMNS = ["category", "product", "variant"]
DEFAULT_PRICE = Decimal("999")

SIZE_VALUES = {'xs', 's', 'm', 'l', 'xl', '2xl', '3xl', '11 oz', '600 ml', '750 ml'}
MATERIAL_VALUES = {'regular', 'acrylic'}


def guess_variant_type(variant_name: str) -> str:
    value = variant_name.strip().lower()
    if value in SIZE_VALUES:
        return 'Size'
    if 'frame' in value:
        return 'Frame'
    if 'zipper' in value:
        return 'Style'
    if value in MATERIAL_VALUES:
        return 'Material'
    return 'Option'


def derive_sku(category: str, product: str) -> str:
    slug = re.sub(r"[^A-Z0-9]+", "-", product.upper()).strip("-")
    return f"{category.strip()[:3].upper()}-{slug}"[:64]


def load_catalog_frame(source) -> pd.DataFrame:
    """
    Read and normalise the CSV

    Raises:
        ValueError: when a required column is missing
    """
    df = pd.read_csv(source, encoding='utf-8', dtype=str)
    df.columns = [str(c).strip().lower() for c in df.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")

    for column in REQUIRED_COLUMNS:
        df[column] = df[column].fillna("").str.strip()
    df = df[(df["category"] != "") & (df["product"] != "") & (df["variant"] != "")].copy()

    df["price"] = pd.to_numeric(df["price"], errors="coerce") if "price" in df.columns else float("nan")
    df["stock"] = pd.to_numeric(df["stock"], errors="coerce").fillna(0).astype(int) if "stock" in df.columns else 0
    if "discount_price" in df.columns:
        df["discount_price"] = pd.to_numeric(df["discount_price"], errors="coerce")
    else:
        df["discount_price"] = float("nan")
    if "sku" not in df.columns:
        df["sku"] = None
    df["sku"] = [
        sku.strip() if isinstance(sku, str) and sku.strip() else derive_sku(cat, prod)
        for sku, cat, prod in zip(df["sku"], df["category"], df["product"])
    ]
    return df


def _decimal(value) -> Optional[Decimal]:
    if value is None or pd.isna(value):
        return None
    return Decimal(str(value))


class CatalogImportService:

    def __init__(self, repository: Optional[ProductRepository] = None):
        self.repository = repository or ProductRepository()

    def import_frame(self, df: pd.DataFrame, dry_run: bool = False) -> Dict[str, int]:
        """
        Upsert everything in one transaction

        Product price = lowest variant price (default 999); product stock =
        sum of its variants' stock.

        Returns:
            {"categories": n, "products": n, "variants": n}
        """
        stats = {"categories": 0, "products": 0, "variants": 0}
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            category_ids: Dict[str, str] = {}

            for (category, sku, product), group in df.groupby(["category", "sku", "product"], sort=False):
                if category not in category_ids:
                    category_ids[category] = self.repository.upsert_category(cursor, category)
                    stats["categories"] += 1

                prices = group["price"].dropna()
                base_price = _decimal(prices.min()) if not prices.empty else DEFAULT_PRICE
                discounts = group["discount_price"].dropna()
                discount_price = _decimal(discounts.min()) if not discounts.empty else None

                product_id = self.repository.upsert_product(
                    cursor, sku, product, category_ids[category],
                    base_price, discount_price, int(group["stock"].sum()),
                )
                stats["products"] += 1

                for row in group.itertuples(index=False):
                    self.repository.upsert_variant(
                        cursor, product_id, row.variant, guess_variant_type(row.variant),
                        _decimal(row.price), int(row.stock),
                    )
                    stats["variants"] += 1

            if dry_run:
                conn.rollback()
                logger.info(f"Catalog import dry run: {stats}")
            else:
                conn.commit()
                logger.info(f"Catalog import committed: {stats}")
            return stats

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def import_csv(self, source, dry_run: bool = False) -> Dict[str, int]:
        return self.import_frame(load_catalog_frame(source), dry_run=dry_run)
