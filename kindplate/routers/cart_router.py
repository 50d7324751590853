"""Customer cart API"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Path, Query

from kindplate.core.dependencies import CartServiceDep, CurrentUserDep
from kindplate.schemas.cart import (
    AddToCartRequest,
    CartItem,
    CartResponse,
    UpdateCartItemRequest,
)
from kindplate.schemas.common import BaseResponse
from kindplate.schemas.order import OrderDraftPreviewResponse
from kindplate.services.cart_service import CartService

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/customer/cart",
    tags=["Cart"],
    responses={
        400: {"description": "Invalid request"},
        401: {"description": "Authentication required"},
        404: {"description": "Offer or cart item not found"},
        409: {"description": "Cart holds offers from another business"},
        422: {"description": "Validation failed"},
        500: {"description": "Internal server error"}
    }
)


def _cart_response(service: CartService, user_id: int, items: List[CartItem],
                   message: Optional[str] = None) -> CartResponse:
    return CartResponse(
        success=True,
        message=message,
        data=items,
        summary=service.get_summary(user_id, items),
    )


@router.get(
    "",
    response_model=CartResponse,
    summary="Get cart",
    description="Items in the customer's cart together with the totals used by the checkout button."
)
async def get_cart(
    user_id: int = CurrentUserDep,
    service: CartService = CartServiceDep
):
    try:
        return _cart_response(service, user_id, service.get_cart(user_id))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Loading cart failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get(
    "/summary",
    response_model=CartResponse,
    summary="Cart summary",
    description="Same payload as the cart itself; kept for the cart badge."
)
async def get_cart_summary(
    user_id: int = CurrentUserDep,
    service: CartService = CartServiceDep
):
    try:
        return _cart_response(service, user_id, service.get_cart(user_id))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Loading cart summary failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "",
    response_model=CartResponse,
    summary="Add offer to cart",
    description="""Add units of an offer to the cart.

    **Rules:**
    - the cart only ever holds offers of one business
    - adding an offer of another business answers 409 `VENDOR_CONFLICT`;
      repeat the call with `replace_cart=true` to empty the cart and add the offer
    - quantities of the same offer are merged, up to 100 units
    """,
    responses={
        409: {
            "description": "Cart holds offers from another business",
            "content": {
                "application/json": {
                    "example": {
                        "success": False,
                        "error": "VENDOR_CONFLICT",
                        "message": "Cart contains offers from Bakery; replace them with Cafe?",
                        "details": {
                            "current_business_id": 1,
                            "current_business_name": "Bakery",
                            "new_business_id": 2,
                            "new_business_name": "Cafe"
                        }
                    }
                }
            }
        }
    }
)
async def add_to_cart(
    request: AddToCartRequest,
    user_id: int = CurrentUserDep,
    service: CartService = CartServiceDep
):
    try:
        items = service.add_to_cart(user_id, request.offer_id, request.quantity, request.replace_cart)
        return _cart_response(service, user_id, items, "Added to cart")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Adding to cart failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.put(
    "",
    response_model=CartResponse,
    summary="Update cart item quantity",
    description="Set the quantity of a cart line. A quantity of 0 removes the line."
)
async def update_cart_item(
    request: UpdateCartItemRequest,
    user_id: int = CurrentUserDep,
    service: CartService = CartServiceDep
):
    try:
        items = service.update_cart_item(user_id, request.offer_id, request.quantity)
        return _cart_response(service, user_id, items, "Cart updated")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Updating cart failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete(
    "/{offer_id}",
    response_model=CartResponse,
    summary="Remove offer from cart"
)
async def remove_from_cart(
    offer_id: int = Path(..., gt=0, description="Offer ID"),
    user_id: int = CurrentUserDep,
    service: CartService = CartServiceDep
):
    try:
        items = service.remove_from_cart(user_id, offer_id)
        return _cart_response(service, user_id, items, "Removed from cart")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Removing from cart failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete(
    "",
    response_model=BaseResponse,
    summary="Clear cart"
)
async def clear_cart(
    user_id: int = CurrentUserDep,
    service: CartService = CartServiceDep
):
    try:
        service.clear_cart(user_id)
        return {"success": True, "message": "Cart cleared"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Clearing cart failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get(
    "/draft",
    response_model=OrderDraftPreviewResponse,
    summary="Checkout preview",
    description="Order draft built from the cart. `can_checkout` is false and `data` is null for an empty cart."
)
async def get_checkout_draft(
    notes: Optional[str] = Query(None, max_length=500, description="Order notes"),
    user_id: int = CurrentUserDep,
    service: CartService = CartServiceDep
):
    try:
        draft = service.build_draft(user_id, notes)
        return {"success": True, "can_checkout": draft is not None, "data": draft}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Building checkout draft failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
