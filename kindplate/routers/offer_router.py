"""Offer API: customer offer card and business offer management"""

import logging

from fastapi import APIRouter, HTTPException, Path

from kindplate.core.dependencies import CurrentBusinessDep, OfferServiceDep
from kindplate.schemas.common import BaseResponse
from kindplate.schemas.offer import (
    BusinessOfferListResponse,
    BusinessOfferOut,
    BusinessOfferResponse,
    CreateOfferRequest,
    DeleteOfferRequest,
    OfferResponse,
    ToggleOfferRequest,
)
from kindplate.services.offer_service import OfferService

logger = logging.getLogger(__name__)

customer_router = APIRouter(prefix="/customer/offers", tags=["Offers"])
business_router = APIRouter(
    prefix="/business/offers",
    tags=["Business offers"],
    responses={
        403: {"description": "Offer belongs to another business"},
        404: {"description": "Offer not found"},
        422: {"description": "Validation failed"},
        500: {"description": "Internal server error"}
    }
)


@customer_router.get(
    "/{offer_id}",
    response_model=OfferResponse,
    summary="Offer card",
    description="Active offer with its business and discount percent. Cached in Redis for a few minutes."
)
async def get_offer(
    offer_id: int = Path(..., gt=0, description="Offer ID"),
    service: OfferService = OfferServiceDep
):
    try:
        return {"success": True, "data": service.get_offer_view(offer_id)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Loading offer failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@business_router.get(
    "/mine",
    response_model=BusinessOfferListResponse,
    summary="List own offers"
)
async def list_my_offers(
    business_id: int = CurrentBusinessDep,
    service: OfferService = OfferServiceDep
):
    try:
        offers = service.list_business_offers(business_id)
        return {
            "success": True,
            "offers": [BusinessOfferOut.model_validate(offer) for offer in offers],
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Listing offers failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@business_router.post(
    "/create",
    response_model=BusinessOfferResponse,
    summary="Create offer"
)
async def create_offer(
    request: CreateOfferRequest,
    business_id: int = CurrentBusinessDep,
    service: OfferService = OfferServiceDep
):
    try:
        offer = service.create_offer(business_id, request)
        return {
            "success": True,
            "message": "Offer created",
            "data": BusinessOfferOut.model_validate(offer),
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Creating offer failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@business_router.post(
    "/delete",
    response_model=BaseResponse,
    summary="Delete offer"
)
async def delete_offer(
    request: DeleteOfferRequest,
    business_id: int = CurrentBusinessDep,
    service: OfferService = OfferServiceDep
):
    try:
        service.delete_offer(business_id, request.id)
        return {"success": True, "message": "Offer deleted"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Deleting offer failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@business_router.post(
    "/toggle",
    response_model=BusinessOfferResponse,
    summary="Activate or deactivate offer"
)
async def toggle_offer(
    request: ToggleOfferRequest,
    business_id: int = CurrentBusinessDep,
    service: OfferService = OfferServiceDep
):
    try:
        offer = service.toggle_offer(business_id, request.id, request.is_active)
        return {
            "success": True,
            "message": "Offer activated" if offer.is_active else "Offer deactivated",
            "data": BusinessOfferOut.model_validate(offer),
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Toggling offer failed: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
