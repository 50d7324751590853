"""Offer views for customers and businesses"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from kindplate.schemas.common import BaseResponse, Money, TIME_OF_DAY_PATTERN


class OfferBusiness(BaseModel):
    id: int
    name: str
    address: str


class OfferOut(BaseModel):
    """Customer-facing offer card"""
    id: int
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    original_price: Money
    discounted_price: Money
    quantity_available: int
    pickup_time_start: str
    pickup_time_end: str
    business: OfferBusiness
    discount_percent: int


class BusinessOfferOut(BaseModel):
    """Offer as listed in the business dashboard"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    original_price: Money
    discounted_price: Money
    quantity_available: int
    pickup_time_start: str
    pickup_time_end: str
    is_active: bool
    created_at: Optional[datetime] = None


class CreateOfferRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    image_url: Optional[str] = Field(None, max_length=1024)
    original_price: Decimal = Field(..., gt=0)
    discounted_price: Decimal = Field(..., gt=0)
    quantity_available: int = Field(..., ge=0, le=1000)
    pickup_time_start: str = Field(..., pattern=TIME_OF_DAY_PATTERN)
    pickup_time_end: str = Field(..., pattern=TIME_OF_DAY_PATTERN)
    is_active: bool = True

    @model_validator(mode="after")
    def check_discount(self):
        if self.discounted_price > self.original_price:
            raise ValueError("discounted_price must not exceed original_price")
        return self


class DeleteOfferRequest(BaseModel):
    id: int = Field(..., gt=0)


class ToggleOfferRequest(BaseModel):
    id: int = Field(..., gt=0)
    is_active: bool


class OfferResponse(BaseResponse):
    data: OfferOut


class BusinessOfferResponse(BaseResponse):
    data: BusinessOfferOut


class BusinessOfferListResponse(BaseResponse):
    offers: List[BusinessOfferOut]
