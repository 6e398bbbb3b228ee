"""
Products API Endpoints
Read-only catalog: active products with optional category filter and search
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from storefront.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)

router = APIRouter()


def get_product_repository() -> ProductRepository:
    return ProductRepository()


@router.get("/")
async def get_products(
    category_id: Optional[str] = Query(None, description="Filter by category"),
    search: Optional[str] = Query(None, description="Search by name or SKU"),
    limit: int = Query(24, ge=1, le=100),
    offset: int = Query(0, ge=0),
    repo: ProductRepository = Depends(get_product_repository)
):
    """
    Get active products

    Returns products with computed fields (effective_price, is_on_sale)
    """
    try:
        products, total = repo.find_all(category_id=category_id, search=search, limit=limit, offset=offset)

        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(products),
            "data": [product.to_dict() for product in products]
        }

    except Exception as e:
        logger.error(f"Error fetching products: {e}")
        raise HTTPException(status_code=500, detail="Error fetching products")


@router.get("/{product_id}")
async def get_product(product_id: str, repo: ProductRepository = Depends(get_product_repository)):
    """Get a single product with its variants"""
    try:
        product = repo.find_by_id(product_id)

    except Exception as e:
        logger.error(f"Error fetching product {product_id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching product")

    if product is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")

    return {"status": "success", "data": product.to_dict()}
