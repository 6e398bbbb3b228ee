"""
Coupons API Endpoints
Apply a promo code to the cart; list public promotions
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from storefront.core.auth import TokenUser, get_current_user
from storefront.core.errors import StorefrontError
from storefront.domain.coupon import CouponApply
from storefront.services.cart_service import CartService
from storefront.services.coupon_service import CouponService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_cart_service() -> CartService:
    return CartService()


def get_coupon_service() -> CouponService:
    return CouponService()


@router.post("/apply")
async def apply_coupon(
    body: CouponApply,
    user: TokenUser = Depends(get_current_user),
    service: CartService = Depends(get_cart_service)
):
    """
    Validate a promo code against the caller's cart

    Ineligible codes answer 400 with a coupon.* error code.
    """
    try:
        result = service.apply_coupon(user.id, body.code, email=user.email)
        return {"status": "success", "data": result}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error applying coupon {body.code}: {e}")
        raise HTTPException(status_code=500, detail="Failed to apply promo code")


@router.get("/promotions")
async def get_promotions(service: CouponService = Depends(get_coupon_service)):
    """Active coupons any shopper can use"""
    try:
        coupons = service.list_public_promotions()
        return {
            "status": "success",
            "count": len(coupons),
            "data": [
                {
                    "code": c.code,
                    "description": c.description,
                    "value_label": c.value_label,
                    "min_order_value": float(c.min_order_value),
                    "valid_until": c.valid_until.isoformat() if c.valid_until else None,
                }
                for c in coupons
            ]
        }

    except Exception as e:
        logger.error(f"Error fetching promotions: {e}")
        raise HTTPException(status_code=500, detail="Error fetching promotions")
