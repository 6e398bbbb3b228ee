"""
Checkout API Endpoints
Order creation, Razorpay payment verification, cancellation and
address helpers used by the checkout form
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException

from storefront.core.auth import TokenUser, get_current_user
from storefront.core.errors import StorefrontError
from storefront.domain.order import CancelOrderRequest, CreateOrderRequest, VerifyPaymentRequest
from storefront.services.address_service import AddressService, validate_address
from storefront.services.checkout_service import CheckoutService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_checkout_service() -> CheckoutService:
    return CheckoutService()


def get_address_service() -> AddressService:
    return AddressService()


@router.post("/orders", status_code=201)
async def create_order(
    request: CreateOrderRequest,
    user: TokenUser = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service)
):
    """
    Price the stored cart, reserve stock and open a Razorpay order

    The response carries what the browser needs for Razorpay checkout.
    """
    try:
        session = await service.create_order(user, request)
        return {"status": "success", "data": session.model_dump()}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error creating order for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to create order. Please try again.")


@router.post("/verify")
async def verify_payment(
    request: VerifyPaymentRequest,
    user: TokenUser = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service)
):
    try:
        order = await service.verify_payment(user, request)
        return {
            "status": "success",
            "message": "Payment verified",
            "data": {"order_id": order.id, "order_number": order.order_number}
        }

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error verifying payment for order {request.order_id}: {e}")
        raise HTTPException(status_code=500, detail="Payment verification failed")


@router.post("/cancel")
async def cancel_order(
    request: CancelOrderRequest,
    user: TokenUser = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service)
):
    """Cancel a pending order after the payment window was dismissed"""
    try:
        if request.reason:
            logger.info(f"Cancel requested for {request.order_id}: {request.reason}")
        result = service.cancel_order(user, request.order_id)
        return {"status": "success", "data": result}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error cancelling order {request.order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to cancel order")


@router.get("/pincode/{pincode}")
async def lookup_pincode(pincode: str, service: AddressService = Depends(get_address_service)):
    """District and state for an Indian pincode"""
    try:
        return {"status": "success", "data": service.lookup_pincode(pincode)}

    except StorefrontError:
        raise
    except Exception as e:
        logger.error(f"Error looking up pincode {pincode}: {e}")
        raise HTTPException(status_code=500, detail="Error validating pincode")


@router.post("/validate-address")
async def check_address(address: Dict[str, Any] = Body(...)):
    """Validate a shipping address; 422 with the first failing rule"""
    return {"status": "success", "data": validate_address(address).model_dump()}
