"""Cart models: stored items, offer snapshots and request bodies"""

from typing import List, Optional

from pydantic import BaseModel, Field

from kindplate.schemas.common import BaseResponse, Money


class BusinessSnapshot(BaseModel):
    id: int
    name: str
    address: str = ""


class OfferSnapshot(BaseModel):
    """Copy of an offer taken when it enters the cart"""
    id: int
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    original_price: Optional[Money] = None
    discounted_price: Money
    pickup_time_start: Optional[str] = None
    pickup_time_end: Optional[str] = None
    business: BusinessSnapshot


class CartItem(BaseModel):
    offer_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1)
    business_id: int = Field(..., gt=0)
    offer: OfferSnapshot


# ==================== requests ====================

class AddToCartRequest(BaseModel):
    """Add an offer to the cart"""
    offer_id: int = Field(
        ...,
        gt=0,
        description="Offer ID",
        examples=[1]
    )
    quantity: int = Field(
        1,
        ge=1,
        le=100,
        description="Units to add",
        examples=[2]
    )
    replace_cart: bool = Field(
        False,
        description="Confirm replacing a cart that holds another business's offers"
    )


class UpdateCartItemRequest(BaseModel):
    """Set the quantity of a cart line; 0 removes it"""
    offer_id: int = Field(..., gt=0, description="Offer ID")
    quantity: int = Field(..., ge=0, le=100, description="New quantity")


# ==================== responses ====================

class CartSummary(BaseModel):
    items_count: int
    total_price: Money
    business_id: Optional[int] = None
    can_checkout: bool


class CartResponse(BaseResponse):
    data: List[CartItem] = Field(default_factory=list)
    summary: CartSummary
