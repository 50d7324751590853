"""Payment initiation and status models"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from kindplate.models.payment import PaymentMethod, PaymentStatus
from kindplate.schemas.common import BaseResponse, Money


class CreatePaymentRequest(BaseModel):
    """Start paying for an order"""
    order_id: int = Field(
        ...,
        gt=0,
        description="Order ID",
        examples=[1]
    )
    payment_method: PaymentMethod = Field(
        PaymentMethod.YOOKASSA,
        description="Payment provider"
    )
    return_url: Optional[str] = Field(
        None,
        max_length=1024,
        description="Where the provider sends the customer back",
        examples=["https://kindplate.ru/payment/1/success"]
    )


class PaymentInitiation(BaseModel):
    """What the client needs to redirect the customer"""
    payment_id: int
    order_id: int
    payment_url: str
    amount: Money
    currency: str
    status: PaymentStatus
    redirect_delay_ms: int


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    amount: Money
    currency: str
    payment_method: PaymentMethod
    status: PaymentStatus
    payment_url: Optional[str] = None
    refund_required: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PaymentWebhook(BaseModel):
    """Status notification sent by the payment provider"""
    payment_id: int = Field(..., gt=0)
    status: PaymentStatus
    amount: Decimal
    currency: Optional[str] = None


class PaymentInitiationResponse(BaseResponse):
    data: PaymentInitiation


class PaymentResponse(BaseResponse):
    data: PaymentOut


class PaymentListResponse(BaseResponse):
    data: List[PaymentOut]
