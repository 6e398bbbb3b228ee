"""
Orders API Endpoints
Order history of the signed-in shopper
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from storefront.core.auth import TokenUser, get_current_user
from storefront.core.errors import StorefrontError
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_order_service() -> OrderService:
    return OrderService()


@router.get("/")
async def get_my_orders(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: TokenUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    try:
        orders = service.list_user_orders(user.id, limit=limit, offset=offset)
        return {
            "status": "success",
            "count": len(orders),
            "data": [order.to_dict() for order in orders]
        }

    except Exception as e:
        logger.error(f"Error fetching orders for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching orders")


@router.get("/{order_id}")
async def get_my_order(
    order_id: str,
    user: TokenUser = Depends(get_current_user),
    service: OrderService = Depends(get_order_service)
):
    try:
        order = service.get_user_order(user.id, order_id)
        return {"status": "success", "data": order.to_dict()}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error fetching order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching order")
