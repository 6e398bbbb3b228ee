"""
Admin API Endpoints
Coupon management, order management, refunds and export, shipping
settings and newsletter broadcast

Requires the admin role; smart coupons and stale order cleanup also accept
the X-Internal-Key header for scheduled jobs.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from storefront.core.auth import TokenUser, require_admin, require_admin_or_internal
from storefront.core.errors import StorefrontError
from storefront.domain.coupon import CouponCreate, CouponUpdate, SmartCouponRequest
from storefront.domain.order import OrderStatusUpdate, RefundRequest
from storefront.domain.pricing import ShippingSettingsUpdate
from storefront.services.checkout_service import CheckoutService
from storefront.services.coupon_service import CouponService
from storefront.services.email_service import EmailService
from storefront.services.order_service import OrderService
from storefront.services.shipping_service import ShippingService

logger = logging.getLogger(__name__)

router = APIRouter()


class BroadcastRequest(BaseModel):
    subject: str = Field(..., min_length=1, max_length=200)
    html_content: str = Field(..., min_length=1)
    test_email: Optional[str] = Field(None, description="Send only to this address, subject prefixed with [TEST]")


def get_coupon_service() -> CouponService:
    return CouponService()


def get_order_service() -> OrderService:
    return OrderService()


def get_checkout_service() -> CheckoutService:
    return CheckoutService()


def get_shipping_service() -> ShippingService:
    return ShippingService()


def get_email_service() -> EmailService:
    return EmailService()


# ============================================================================
# Coupons
# ============================================================================

@router.get("/coupons")
async def list_coupons(
    is_active: Optional[bool] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: TokenUser = Depends(require_admin),
    service: CouponService = Depends(get_coupon_service)
):
    try:
        coupons = service.list_coupons(is_active=is_active, limit=limit, offset=offset)
        return {"status": "success", "count": len(coupons), "data": [c.to_dict() for c in coupons]}

    except Exception as e:
        logger.error(f"Error listing coupons: {e}")
        raise HTTPException(status_code=500, detail="Error fetching coupons")


@router.get("/coupons/{coupon_id}")
async def get_coupon(
    coupon_id: str,
    admin: TokenUser = Depends(require_admin),
    service: CouponService = Depends(get_coupon_service)
):
    try:
        return {"status": "success", "data": service.get_coupon(coupon_id).to_dict()}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error fetching coupon {coupon_id}: {e}")
        raise HTTPException(status_code=500, detail="Error fetching coupon")


@router.post("/coupons", status_code=201)
async def create_coupon(
    data: CouponCreate,
    admin: TokenUser = Depends(require_admin),
    service: CouponService = Depends(get_coupon_service)
):
    try:
        coupon = service.create_coupon(data)
        return {"status": "success", "message": "Coupon created", "data": coupon.to_dict()}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error creating coupon {data.code}: {e}")
        raise HTTPException(status_code=500, detail="Error creating coupon")


@router.patch("/coupons/{coupon_id}")
async def update_coupon(
    coupon_id: str,
    data: CouponUpdate,
    admin: TokenUser = Depends(require_admin),
    service: CouponService = Depends(get_coupon_service)
):
    try:
        coupon = service.update_coupon(coupon_id, data)
        return {"status": "success", "message": "Coupon updated", "data": coupon.to_dict()}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error updating coupon {coupon_id}: {e}")
        raise HTTPException(status_code=500, detail="Error updating coupon")


@router.delete("/coupons/{coupon_id}")
async def delete_coupon(
    coupon_id: str,
    admin: TokenUser = Depends(require_admin),
    service: CouponService = Depends(get_coupon_service)
):
    try:
        service.delete_coupon(coupon_id)
        return {"status": "success", "message": "Coupon deleted"}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error deleting coupon {coupon_id}: {e}")
        raise HTTPException(status_code=500, detail="Error deleting coupon")


@router.post("/smart-coupons", status_code=201)
async def generate_smart_coupon(
    request: SmartCouponRequest,
    caller: TokenUser = Depends(require_admin_or_internal),
    service: CouponService = Depends(get_coupon_service)
):
    """Single-use coupon, optionally locked to one shopper's e-mail"""
    try:
        coupon = service.generate_smart_coupon(request)
        return {"status": "success", "data": coupon.to_dict()}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error generating smart coupon: {e}")
        raise HTTPException(status_code=500, detail="Error generating coupon")


# ============================================================================
# Orders
# ============================================================================

@router.get("/orders")
async def list_orders(
    status: Optional[str] = Query(None, description="Filter by order status"),
    payment_status: Optional[str] = Query(None, description="Filter by payment status"),
    search: Optional[str] = Query(None, description="Order number or customer e-mail"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: TokenUser = Depends(require_admin),
    service: OrderService = Depends(get_order_service)
):
    try:
        orders, total = service.list_orders(
            status=status, payment_status=payment_status, search=search, limit=limit, offset=offset
        )
        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "summary": service.summarize(orders),
            "data": [order.to_dict() for order in orders]
        }

    except Exception as e:
        logger.error(f"Error listing orders: {e}")
        raise HTTPException(status_code=500, detail="Error fetching orders")


@router.get("/orders/export")
async def export_orders(
    status: Optional[str] = Query(None),
    payment_status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    admin: TokenUser = Depends(require_admin),
    service: OrderService = Depends(get_order_service)
):
    """Download orders and their lines as an Excel workbook"""
    try:
        excel_file = service.export_orders(status=status, payment_status=payment_status, search=search)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"Orders_{timestamp}.xlsx"

        return StreamingResponse(
            excel_file,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={
                "Content-Disposition": f"attachment; filename={filename}"
            }
        )

    except Exception as e:
        logger.error(f"Error exporting orders: {e}")
        raise HTTPException(status_code=500, detail=f"Error generating export: {str(e)}")


@router.post("/orders/cleanup-stale")
async def cleanup_stale_orders(
    caller: TokenUser = Depends(require_admin_or_internal),
    service: CheckoutService = Depends(get_checkout_service)
):
    """Cancel pending orders past the payment window and release their stock"""
    try:
        results = service.cleanup_stale_orders()
        cancelled = sum(1 for r in results if r['status'] == 'cancelled')
        return {
            "status": "success",
            "message": f"Cleaned up {cancelled} stale orders",
            "cleaned": cancelled,
            "results": results
        }

    except Exception as e:
        logger.error(f"Error cleaning up stale orders: {e}")
        raise HTTPException(status_code=500, detail="Error cleaning up stale orders")


@router.patch("/orders/{order_id}/status")
async def update_order_status(
    order_id: str,
    update: OrderStatusUpdate,
    notify: bool = Query(True, description="E-mail the shopper about the change"),
    admin: TokenUser = Depends(require_admin),
    service: OrderService = Depends(get_order_service)
):
    try:
        order = await service.update_status(order_id, update, notify=notify)
        return {"status": "success", "data": order.to_dict()}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error updating order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Error updating order")


@router.post("/orders/{order_id}/refund")
async def refund_order(
    order_id: str,
    request: Optional[RefundRequest] = None,
    admin: TokenUser = Depends(require_admin),
    service: CheckoutService = Depends(get_checkout_service)
):
    """Refund a paid order through Razorpay, in full unless an amount is given"""
    try:
        result = await service.refund_order(order_id, amount=request.amount if request else None)
        logger.info(f"Refund of order {order_id} issued by {admin.email}")
        return {"status": "success", "message": "Refund processed", "data": result}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error refunding order {order_id}: {e}")
        raise HTTPException(status_code=500, detail="Error processing refund")


# ============================================================================
# Settings
# ============================================================================

@router.get("/shipping-settings")
async def get_shipping_settings(
    admin: TokenUser = Depends(require_admin),
    service: ShippingService = Depends(get_shipping_service)
):
    try:
        return {"status": "success", "data": service.get_settings().to_dict()}

    except Exception as e:
        logger.error(f"Error fetching shipping settings: {e}")
        raise HTTPException(status_code=500, detail="Error fetching shipping settings")


@router.put("/shipping-settings")
async def update_shipping_settings(
    update: ShippingSettingsUpdate,
    admin: TokenUser = Depends(require_admin),
    service: ShippingService = Depends(get_shipping_service)
):
    try:
        shipping = service.update_settings(update.shipping_cost, update.free_shipping_threshold)
        return {"status": "success", "message": "Shipping settings updated", "data": shipping.to_dict()}

    except Exception as e:
        logger.error(f"Error updating shipping settings: {e}")
        raise HTTPException(status_code=500, detail="Error updating shipping settings")


# ============================================================================
# Newsletter
# ============================================================================

@router.post("/broadcast")
async def broadcast(
    request: BroadcastRequest,
    admin: TokenUser = Depends(require_admin),
    service: EmailService = Depends(get_email_service)
):
    """Send a newsletter to active subscribers (bcc, batches of 50)"""
    try:
        result = await service.broadcast(request.subject, request.html_content, test_email=request.test_email)
        return {"status": "success", "data": result}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error sending broadcast: {e}")
        raise HTTPException(status_code=500, detail="Error sending broadcast")
