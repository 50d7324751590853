"""Payment API"""

import logging
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Path

from kindplate.core.dependencies import CurrentUserDep, PaymentServiceDep
from kindplate.schemas.payment import (
    CreatePaymentRequest,
    PaymentInitiationResponse,
    PaymentListResponse,
    PaymentOut,
    PaymentResponse,
    PaymentWebhook,
)
from kindplate.services.payment_service import PaymentService

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/payments",
    tags=["Payments"],
    responses={
        400: {"description": "Order cannot be paid"},
        404: {"description": "Order or payment not found"},
        422: {"description": "Validation failed"},
        429: {"description": "Payment creation already in progress"},
        500: {"description": "Internal server error"}
    }
)


@router.post(
    "/create",
    response_model=PaymentInitiationResponse,
    summary="Start payment",
    description="""Create a payment for a confirmed order and return the provider URL.

    **Duplicate protection:**
    - an existing pending payment of the order is returned instead of a new one
    - calls carrying the same `Idempotency-Key` header replay the first response
    - concurrent calls for one order are serialized with a Redis lock
    """,
    responses={
        200: {
            "description": "Payment started",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "message": "Payment created",
                        "data": {
                            "payment_id": 10,
                            "order_id": 1,
                            "payment_url": "https://yookassa.ru/payment/10",
                            "amount": 300.0,
                            "currency": "RUB",
                            "status": "pending",
                            "redirect_delay_ms": 1000
                        }
                    }
                }
            }
        }
    }
)
async def create_payment(
    request: CreatePaymentRequest,
    idempotency_key: Optional[str] = Header(None, max_length=128),
    user_id: int = CurrentUserDep,
    service: PaymentService = PaymentServiceDep
):
    try:
        initiation = service.create_payment(user_id, request, idempotency_key)
        return {"success": True, "message": "Payment created", "data": initiation}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Creating payment failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get(
    "",
    response_model=PaymentListResponse,
    summary="Payment history"
)
async def list_payments(
    user_id: int = CurrentUserDep,
    service: PaymentService = PaymentServiceDep
):
    try:
        payments = service.list_payments(user_id)
        return {"success": True, "data": [PaymentOut.model_validate(p) for p in payments]}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Listing payments failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get(
    "/{payment_id}/status",
    response_model=PaymentResponse,
    summary="Payment status"
)
async def get_payment_status(
    payment_id: int = Path(..., gt=0, description="Payment ID"),
    user_id: int = CurrentUserDep,
    service: PaymentService = PaymentServiceDep
):
    try:
        payment = service.get_payment_status(user_id, payment_id)
        return {"success": True, "data": PaymentOut.model_validate(payment)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Loading payment status failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get(
    "/order/{order_id}/status",
    response_model=PaymentResponse,
    summary="Latest payment of an order"
)
async def get_order_payment_status(
    order_id: int = Path(..., gt=0, description="Order ID"),
    user_id: int = CurrentUserDep,
    service: PaymentService = PaymentServiceDep
):
    try:
        payment = service.get_order_payment_status(user_id, order_id)
        return {"success": True, "data": PaymentOut.model_validate(payment)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Loading order payment status failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "/webhook",
    response_model=PaymentResponse,
    summary="Provider status notification"
)
async def payment_webhook(
    webhook: PaymentWebhook,
    service: PaymentService = PaymentServiceDep
):
    try:
        payment = service.handle_webhook(webhook)
        return {"success": True, "data": PaymentOut.model_validate(payment)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Payment webhook failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
