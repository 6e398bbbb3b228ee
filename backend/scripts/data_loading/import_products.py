"""
Import the product catalog from a CSV master list

One row per variant with columns category, product, variant and optionally
price, stock, sku, discount_price. Categories, products and variants are
upserted, so the import can be re-run after editing the CSV.

Usage:
    python3 import_products.py products.csv [--dry-run]
"""
import os
import sys
import logging
import argparse

from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from storefront.services.catalog_import_service import CatalogImportService

logging.basicConfig(level=logging.INFO, format='%(message)s')
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description='Import products from a CSV file')
    parser.add_argument('csv_path', help='Path to the catalog CSV')
    parser.add_argument('--dry-run', action='store_true', help='Run the import and roll it back')
    args = parser.parse_args()

    load_dotenv()

    if not os.path.exists(args.csv_path):
        logger.error(f"File not found: {args.csv_path}")
        sys.exit(1)

    logger.info("=" * 60)
    logger.info(f"CATALOG IMPORT{' (DRY RUN)' if args.dry_run else ''}: {args.csv_path}")
    logger.info("=" * 60)

    try:
        stats = CatalogImportService().import_csv(args.csv_path, dry_run=args.dry_run)
    except ValueError as e:
        logger.error(f"Invalid CSV: {e}")
        sys.exit(1)

    logger.info(f"Categories: {stats['categories']}")
    logger.info(f"Products:   {stats['products']}")
    logger.info(f"Variants:   {stats['variants']}")
    if args.dry_run:
        logger.info("Dry run: no changes were saved")


if __name__ == '__main__':
    main()
