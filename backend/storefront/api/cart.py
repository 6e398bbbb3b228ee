"""
Cart API Endpoints
The signed-in shopper's cart and its live price quote
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from storefront.core.auth import TokenUser, get_current_user
from storefront.core.errors import StorefrontError
from storefront.domain.cart import BundleAdd, CartItemAdd, CartItemUpdate
from storefront.services.cart_service import CartService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_cart_service() -> CartService:
    return CartService()


@router.get("/")
async def get_cart(
    coupon_code: Optional[str] = Query(None, description="Promo code to price the cart with"),
    user: TokenUser = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """
    Cart lines and quote (subtotal, shipping, discount, total, free shipping progress)
    """
    try:
        cart = service.get_cart(user.id, email=user.email, coupon_code=coupon_code)
        return {"status": "success", "data": cart}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error fetching cart for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching cart")


@router.post("/items", status_code=201)
async def add_item(
    item: CartItemAdd,
    user: TokenUser = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    try:
        line_id = service.add_item(user.id, item)
        message = "Bundle item added" if item.bundle_id else "Item added to cart"
        return {"status": "success", "message": message, "data": {"id": line_id}}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error adding to cart for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to add item to cart")


@router.post("/bundles/{bundle_id}", status_code=201)
async def add_bundle(
    bundle_id: str,
    bundle: BundleAdd,
    user: TokenUser = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """Add every member of a bundle"""
    try:
        count = service.add_bundle(user.id, bundle_id, bundle)
        return {"status": "success", "message": "Bundle added to cart", "data": {"items": count}}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error adding bundle {bundle_id} for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to add bundle to cart")


@router.patch("/items/{item_id}")
async def update_item(
    item_id: str,
    update: CartItemUpdate,
    user: TokenUser = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    try:
        service.update_quantity(user.id, item_id, update.quantity)
        return {"status": "success"}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error updating cart item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update quantity")


@router.delete("/items/{item_id}")
async def remove_item(
    item_id: str,
    user: TokenUser = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    try:
        service.remove_item(user.id, item_id)
        return {"status": "success"}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error removing cart item {item_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove item")


@router.delete("/")
async def clear_cart(
    user: TokenUser = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    try:
        removed = service.clear(user.id)
        return {"status": "success", "data": {"removed": removed}}

    except Exception as e:
        logger.error(f"Error clearing cart for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to clear cart")
