"""Cart service: the cart store plus offer checks and the cart view cache"""

import json
import logging
from typing import List, Optional

from redis import Redis
from sqlalchemy.orm import Session

from kindplate.core.config import settings
from kindplate.core.exceptions import InsufficientQuantityError
from kindplate.schemas.cart import CartItem, CartSummary
from kindplate.schemas.order import OrderDraft
from kindplate.services.cart_persistence import CartPersistence
from kindplate.services.cart_store import (
    CartStore,
    current_business_id,
    find_item,
    total_items_count,
    total_price,
)
from kindplate.services.offer_service import OfferService
from kindplate.services.order_draft import build_order_draft
from kindplate.services.vendor_guard import find_vendor_conflict, resolve_vendor_conflict

logger = logging.getLogger(__name__)


def cart_view_key(user_id: int) -> str:
    return f"cart:view:{user_id}"


class CartService:
    """Customer cart operations"""

    def __init__(self, db: Session, persistence: CartPersistence, redis: Redis = None):
        self.db = db
        self.persistence = persistence
        self.redis = redis
        self.offers = OfferService(db, redis)

    def store(self, user_id: int) -> CartStore:
        return CartStore(
            owner_id=user_id,
            persistence=self.persistence,
            on_change=self.invalidate_cart_view,
            max_quantity=settings.CART_MAX_QUANTITY,
        )

    def invalidate_cart_view(self, user_id: int) -> None:
        if self.redis:
            self.redis.delete(cart_view_key(user_id))
            logger.debug(f"Cart view invalidated for user {user_id}")

    def get_cart(self, user_id: int) -> List[CartItem]:
        """Cart items (cached view)"""
        cache_key = cart_view_key(user_id)

        if self.redis:
            cached = self.redis.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for cart of user {user_id}")
                return [CartItem.model_validate(entry) for entry in json.loads(cached)]

        items = self.store(user_id).items

        if self.redis:
            payload = json.dumps([item.model_dump(mode="json") for item in items])
            self.redis.setex(cache_key, settings.CART_VIEW_TTL_SECONDS, payload)

        return items

    def get_summary(self, user_id: int, items: Optional[List[CartItem]] = None) -> CartSummary:
        if items is None:
            items = self.get_cart(user_id)
        business_id = current_business_id(items)
        return CartSummary(
            items_count=total_items_count(items),
            total_price=total_price(items),
            business_id=business_id,
            can_checkout=business_id is not None,
        )

    def add_to_cart(self, user_id: int, offer_id: int, quantity: int,
                    replace_cart: bool = False) -> List[CartItem]:
        """Add an offer; a cart of another business is only replaced when confirmed"""
        offer = self.offers.get_active_offer(offer_id)
        snapshot = self.offers.snapshot(offer)
        store = self.store(user_id)
        items = store.items

        conflict = find_vendor_conflict(items, snapshot)
        if conflict and replace_cart:
            self._check_available(offer, quantity)
            resolve_vendor_conflict(store, snapshot, quantity, confirm=True)
            return store.items

        # merged line must still fit into what is available
        existing = find_item(items, offer_id) if not conflict else None
        self._check_available(offer, min(quantity + (existing.quantity if existing else 0), store.max_quantity))

        result = store.add_to_cart(snapshot, quantity)
        logger.info(f"Offer added to cart: user_id={user_id}, offer_id={offer_id}, quantity={quantity}")
        return result

    def update_cart_item(self, user_id: int, offer_id: int, quantity: int) -> List[CartItem]:
        store = self.store(user_id)
        if quantity > 0 and find_item(store.items, offer_id) is not None:
            offer = self.offers.find_offer(offer_id)
            if offer is not None:
                self._check_available(offer, quantity)
        result = store.update_cart_item(offer_id, quantity)
        logger.info(f"Cart item updated: user_id={user_id}, offer_id={offer_id}, quantity={quantity}")
        return result

    def remove_from_cart(self, user_id: int, offer_id: int) -> List[CartItem]:
        result = self.store(user_id).remove_from_cart(offer_id)
        logger.info(f"Cart item removed: user_id={user_id}, offer_id={offer_id}")
        return result

    def clear_cart(self, user_id: int) -> None:
        self.store(user_id).clear_cart()
        logger.info(f"Cart cleared: user_id={user_id}")

    def build_draft(self, user_id: int, notes: Optional[str] = None) -> Optional[OrderDraft]:
        """Checkout payload for the current cart, None when checkout is disabled"""
        return build_order_draft(
            self.store(user_id).items,
            settings.SERVICE_FEE,
            notes=notes,
            default_start=settings.DEFAULT_PICKUP_START,
            default_end=settings.DEFAULT_PICKUP_END,
        )

    @staticmethod
    def _check_available(offer, quantity: int) -> None:
        if offer.quantity_available < quantity:
            raise InsufficientQuantityError(
                f"Only {offer.quantity_available} of \"{offer.title}\" left"
            )
