"""Offer lookups for customers and offer management for businesses"""

import json
import logging
from typing import List, Optional

from redis import Redis
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from kindplate.core.config import settings
from kindplate.core.exceptions import NoAuthorityError, OfferNotFoundError
from kindplate.models.offer import Offer
from kindplate.schemas.cart import BusinessSnapshot, OfferSnapshot
from kindplate.schemas.offer import CreateOfferRequest, OfferOut

logger = logging.getLogger(__name__)


def offer_cache_key(offer_id: int) -> str:
    return f"offer:view:{offer_id}"


class OfferService:
    """Offer queries with a Redis view cache"""

    def __init__(self, db: Session, redis: Redis = None):
        self.db = db
        self.redis = redis

    # ---------- customer side ----------

    def get_active_offer(self, offer_id: int) -> Offer:
        offer = self.db.execute(
            select(Offer)
            .options(joinedload(Offer.business))
            .where(Offer.id == offer_id, Offer.is_active.is_(True))
        ).scalar_one_or_none()
        if offer is None:
            raise OfferNotFoundError()
        return offer

    def get_offer_view(self, offer_id: int) -> OfferOut:
        """Customer offer card (cached)"""
        cache_key = offer_cache_key(offer_id)

        if self.redis:
            cached = self.redis.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for offer {offer_id}")
                return OfferOut.model_validate(json.loads(cached))

        offer = self.get_active_offer(offer_id)
        original = offer.original_price
        discount_percent = round((1 - offer.discounted_price / original) * 100) if original else 0
        view = OfferOut(
            id=offer.id,
            title=offer.title,
            description=offer.description,
            image_url=offer.image_url,
            original_price=offer.original_price,
            discounted_price=offer.discounted_price,
            quantity_available=offer.quantity_available,
            pickup_time_start=offer.pickup_time_start,
            pickup_time_end=offer.pickup_time_end,
            business={
                "id": offer.business.id,
                "name": offer.business.name,
                "address": offer.business.address,
            },
            discount_percent=int(discount_percent),
        )

        if self.redis:
            self.redis.setex(cache_key, settings.OFFER_VIEW_TTL_SECONDS, view.model_dump_json())
            logger.debug(f"Cache set for offer {offer_id}")

        return view

    @staticmethod
    def snapshot(offer: Offer) -> OfferSnapshot:
        """Denormalized copy stored inside a cart item"""
        return OfferSnapshot(
            id=offer.id,
            title=offer.title,
            description=offer.description,
            image_url=offer.image_url,
            original_price=offer.original_price,
            discounted_price=offer.discounted_price,
            pickup_time_start=offer.pickup_time_start,
            pickup_time_end=offer.pickup_time_end,
            business=BusinessSnapshot(
                id=offer.business.id,
                name=offer.business.name,
                address=offer.business.address or "",
            ),
        )

    def invalidate(self, offer_id: int) -> None:
        if self.redis:
            self.redis.delete(offer_cache_key(offer_id))
            logger.debug(f"Cache invalidated for offer {offer_id}")

    # ---------- business side ----------

    def list_business_offers(self, business_id: int) -> List[Offer]:
        offers = self.db.execute(
            select(Offer)
            .where(Offer.business_id == business_id)
            .order_by(Offer.created_at.desc(), Offer.id.desc())
        ).scalars().all()
        logger.info(f"Offers retrieved: business_id={business_id}, count={len(offers)}")
        return list(offers)

    def create_offer(self, business_id: int, request: CreateOfferRequest) -> Offer:
        try:
            offer = Offer(business_id=business_id, **request.model_dump())
            self.db.add(offer)
            self.db.commit()
            self.db.refresh(offer)
            logger.info(f"Offer created: offer_id={offer.id}, business_id={business_id}")
            return offer
        except Exception as e:
            self.db.rollback()
            logger.error(f"Creating offer failed: {str(e)}")
            raise

    def _owned_offer(self, business_id: int, offer_id: int, action: str) -> Offer:
        offer = self.db.get(Offer, offer_id)
        if offer is None:
            raise OfferNotFoundError("Offer not found")
        if offer.business_id != business_id:
            raise NoAuthorityError(f"No permission to {action} this offer")
        return offer

    def delete_offer(self, business_id: int, offer_id: int) -> None:
        offer = self._owned_offer(business_id, offer_id, "delete")
        try:
            self.db.delete(offer)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Deleting offer failed: offer_id={offer_id}, error={str(e)}")
            raise
        self.invalidate(offer_id)
        logger.info(f"Offer deleted: offer_id={offer_id}, business_id={business_id}")

    def toggle_offer(self, business_id: int, offer_id: int, is_active: bool) -> Offer:
        offer = self._owned_offer(business_id, offer_id, "change")
        try:
            offer.is_active = is_active
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Toggling offer failed: offer_id={offer_id}, error={str(e)}")
            raise
        self.invalidate(offer_id)
        logger.info(f"Offer status toggled: offer_id={offer_id}, is_active={is_active}")
        return offer

    def find_offer(self, offer_id: int) -> Optional[Offer]:
        return self.db.get(Offer, offer_id)
