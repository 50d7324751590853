"""Order API: checkout, order lifecycle and pickup"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Path, Query

from kindplate.core.dependencies import (
    CurrentBusinessDep,
    CurrentUserDep,
    OrderServiceDep,
)
from kindplate.models.order import OrderStatus
from kindplate.schemas.order import (
    BusinessOrderListResponse,
    BusinessOrderOut,
    ConfirmOrderRequest,
    OrderConfigResponse,
    OrderDraft,
    OrderListResponse,
    OrderOut,
    OrderResponse,
    PickupQrResponse,
    ScanRequest,
    ScanResponse,
    ScanResult,
    UpdateOrderRequest,
)
from kindplate.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
    responses={
        400: {"description": "Invalid request or order state"},
        401: {"description": "Authentication required"},
        404: {"description": "Order not found"},
        422: {"description": "Validation failed"},
        500: {"description": "Internal server error"}
    }
)
business_router = APIRouter(prefix="/business/orders", tags=["Business orders"])


@router.get(
    "/config",
    response_model=OrderConfigResponse,
    summary="Checkout configuration"
)
async def get_order_config():
    return {"success": True, "data": OrderService.get_config()}


@router.post(
    "/draft",
    response_model=OrderResponse,
    summary="Create order from draft",
    description="""Persist the checkout draft built from the cart.

    **Effects:**
    - totals are recomputed on the server, the service fee comes from configuration
    - ordered units are taken out of the offers' available quantity
    - the cart is cleared
    """
)
async def create_order_draft(
    draft: OrderDraft,
    user_id: int = CurrentUserDep,
    service: OrderService = OrderServiceDep
):
    try:
        order = service.create_draft(user_id, draft)
        return {"success": True, "message": "Order created", "data": OrderOut.model_validate(order)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Creating order failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List own orders"
)
async def list_orders(
    user_id: int = CurrentUserDep,
    service: OrderService = OrderServiceDep
):
    try:
        orders = service.list_orders(user_id)
        return {"success": True, "data": [OrderOut.model_validate(order) for order in orders]}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Listing orders failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "/scan",
    response_model=ScanResponse,
    summary="Redeem pickup code",
    description="""Business staff hand out an order by its short pickup code or the scanned QR payload.

    **Error codes:** `CODE_NOT_FOUND`, `QR_INVALID`, `QR_EXPIRED`, `ALREADY_PICKED_UP`,
    `ORDER_NOT_READY`, `NO_AUTHORITY`
    """
)
async def scan_pickup_code(
    request: ScanRequest,
    business_id: int = CurrentBusinessDep,
    service: OrderService = OrderServiceDep
):
    try:
        order = service.redeem_pickup(business_id, request.code)
        return {
            "success": True,
            "message": "Order handed out",
            "data": ScanResult(
                order_id=order.id,
                status=order.status,
                pickup_verified_at=order.pickup_verified_at,
            ),
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Pickup scan failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order"
)
async def get_order(
    order_id: int = Path(..., gt=0, description="Order ID"),
    user_id: int = CurrentUserDep,
    service: OrderService = OrderServiceDep
):
    try:
        return {"success": True, "data": OrderOut.model_validate(service.get_order(user_id, order_id))}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Loading order failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.patch(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Edit new order"
)
async def update_order(
    request: UpdateOrderRequest,
    order_id: int = Path(..., gt=0, description="Order ID"),
    user_id: int = CurrentUserDep,
    service: OrderService = OrderServiceDep
):
    try:
        order = service.update_order(user_id, order_id, request)
        return {"success": True, "message": "Order updated", "data": OrderOut.model_validate(order)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Updating order failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "/{order_id}/confirm",
    response_model=OrderResponse,
    summary="Confirm order"
)
async def confirm_order(
    request: Optional[ConfirmOrderRequest] = None,
    order_id: int = Path(..., gt=0, description="Order ID"),
    user_id: int = CurrentUserDep,
    service: OrderService = OrderServiceDep
):
    try:
        order = service.confirm_order(user_id, order_id, request or ConfirmOrderRequest())
        return {"success": True, "message": "Order confirmed", "data": OrderOut.model_validate(order)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Confirming order failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "/{order_id}/cancel",
    response_model=OrderResponse,
    summary="Cancel order"
)
async def cancel_order(
    order_id: int = Path(..., gt=0, description="Order ID"),
    user_id: int = CurrentUserDep,
    service: OrderService = OrderServiceDep
):
    try:
        order = service.cancel_order(user_id, order_id)
        return {"success": True, "message": "Order cancelled", "data": OrderOut.model_validate(order)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Cancelling order failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get(
    "/{order_id}/pickup-qr",
    response_model=PickupQrResponse,
    summary="Pickup QR code",
    description="Short-lived signed payload to render as a QR code on the customer's pickup screen."
)
async def get_pickup_qr(
    order_id: int = Path(..., gt=0, description="Order ID"),
    user_id: int = CurrentUserDep,
    service: OrderService = OrderServiceDep
):
    try:
        return {"success": True, "data": service.issue_pickup_qr(user_id, order_id)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Issuing pickup QR failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


# ==================== business side ====================

@business_router.get(
    "",
    response_model=BusinessOrderListResponse,
    summary="Orders of the business"
)
async def list_business_orders(
    status: Optional[OrderStatus] = Query(None, description="Filter by status"),
    business_id: int = CurrentBusinessDep,
    service: OrderService = OrderServiceDep
):
    try:
        orders = service.list_business_orders(business_id, status)
        return {"success": True, "data": [BusinessOrderOut.model_validate(order) for order in orders]}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Listing business orders failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@business_router.post(
    "/{order_id}/ready",
    response_model=OrderResponse,
    response_model_exclude={"data": {"pickup_code"}},
    summary="Mark order ready for pickup"
)
async def mark_order_ready(
    order_id: int = Path(..., gt=0, description="Order ID"),
    business_id: int = CurrentBusinessDep,
    service: OrderService = OrderServiceDep
):
    try:
        order = service.mark_ready(business_id, order_id)
        return {"success": True, "message": "Order is ready for pickup", "data": OrderOut.model_validate(order)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Marking order ready failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
