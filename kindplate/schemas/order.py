"""Order draft, order views and lifecycle request bodies"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from kindplate.models.order import OrderStatus
from kindplate.schemas.common import BaseResponse, Money, TIME_OF_DAY_PATTERN


class OrderItemSchema(BaseModel):
    """Order line as built from a cart item"""
    offer_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1, le=100)
    business_id: int = Field(..., gt=0)
    title: str = Field(..., min_length=1)
    discounted_price: Money = Field(..., gt=0)
    pickup_time_start: str = Field(..., pattern=TIME_OF_DAY_PATTERN)
    pickup_time_end: str = Field(..., pattern=TIME_OF_DAY_PATTERN)


class OrderDraft(BaseModel):
    """Checkout payload assembled from the cart"""
    items: List[OrderItemSchema] = Field(..., min_length=1)
    pickup_time_start: str = Field(..., pattern=TIME_OF_DAY_PATTERN)
    pickup_time_end: str = Field(..., pattern=TIME_OF_DAY_PATTERN)
    business_id: int = Field(..., gt=0)
    business_name: str = Field(..., min_length=1)
    business_address: str = Field("", max_length=512)
    subtotal: Money = Field(..., ge=0)
    service_fee: Money = Field(..., ge=0)
    promocode_discount: Money = Field(Decimal("0"), ge=0)
    total: Money = Field(..., ge=0)
    notes: Optional[str] = Field(None, max_length=500)


class UpdateOrderRequest(BaseModel):
    items: Optional[List[OrderItemSchema]] = Field(None, min_length=1)
    pickup_time_start: Optional[str] = Field(None, pattern=TIME_OF_DAY_PATTERN)
    pickup_time_end: Optional[str] = Field(None, pattern=TIME_OF_DAY_PATTERN)
    notes: Optional[str] = Field(None, max_length=500)


class ConfirmOrderRequest(BaseModel):
    pickup_time_start: Optional[str] = Field(None, pattern=TIME_OF_DAY_PATTERN)
    pickup_time_end: Optional[str] = Field(None, pattern=TIME_OF_DAY_PATTERN)
    notes: Optional[str] = Field(None, max_length=500)


class ScanRequest(BaseModel):
    """Pickup code typed in by hand, or the raw QR payload"""
    code: str = Field(..., min_length=1, max_length=512)


# ==================== responses ====================

class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    offer_id: int
    quantity: int
    price: Money
    title: str
    pickup_time_start: str
    pickup_time_end: str


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    business_id: int
    business_name: str
    business_address: str
    pickup_time_start: str
    pickup_time_end: str
    subtotal: Money
    service_fee: Money
    promocode_discount: Money
    total: Money
    status: OrderStatus
    notes: Optional[str] = None
    pickup_code: str
    items: List[OrderItemOut] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    pickup_verified_at: Optional[datetime] = None


class BusinessOrderOut(OrderOut):
    """Business view; the pickup code is only revealed through the customer"""
    pickup_code: Optional[str] = Field(None, exclude=True)


class OrderConfig(BaseModel):
    service_fee: Money
    promocode_enabled: bool
    currency: str


class PickupQr(BaseModel):
    order_id: int
    pickup_code: str
    qr_payload: str
    expires_at: datetime


class OrderResponse(BaseResponse):
    data: OrderOut


class OrderListResponse(BaseResponse):
    data: List[OrderOut]


class BusinessOrderListResponse(BaseResponse):
    data: List[BusinessOrderOut]


class OrderDraftPreviewResponse(BaseResponse):
    can_checkout: bool
    data: Optional[OrderDraft] = None


class OrderConfigResponse(BaseResponse):
    data: OrderConfig


class PickupQrResponse(BaseResponse):
    data: PickupQr


class ScanResult(BaseModel):
    order_id: int
    status: OrderStatus
    pickup_verified_at: Optional[datetime] = None


class ScanResponse(BaseResponse):
    data: ScanResult
