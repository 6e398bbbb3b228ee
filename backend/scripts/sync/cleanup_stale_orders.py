"""
Cancel pending orders that were never paid

Releases their reserved stock and coupon redemptions. Meant to run on a
schedule (cron / GitHub Actions); the same job is exposed at
POST /api/v1/admin/orders/cleanup-stale for hosted schedulers.

Usage:
    python3 cleanup_stale_orders.py
"""
import os
import sys
import logging

from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

load_dotenv()

from storefront.services.checkout_service import CheckoutService

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(message)s')
logger = logging.getLogger(__name__)


def main():
    results = CheckoutService().cleanup_stale_orders()

    cancelled = [r for r in results if r['status'] == 'cancelled']
    errors = [r for r in results if r['status'] == 'error']

    logger.info(f"Stale orders: {len(results)} found, {len(cancelled)} cancelled, {len(errors)} errors")
    for result in errors:
        logger.error(f"  {result['order_number']}: {result['error']}")

    if errors:
        sys.exit(1)


if __name__ == '__main__':
    main()
