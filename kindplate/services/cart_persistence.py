"""Persistence adapters for the cart store"""

import json
import logging
from typing import Dict, List, Optional

from redis import Redis
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from kindplate.models.cart_entries import CartEntry
from kindplate.schemas.cart import CartItem, OfferSnapshot

logger = logging.getLogger(__name__)


class CartPersistence:
    """Loads and saves one owner's cart as a whole"""

    def load(self, owner_id: int) -> List[CartItem]:
        raise NotImplementedError

    def save(self, owner_id: int, items: List[CartItem]) -> None:
        raise NotImplementedError

    def clear(self, owner_id: int) -> None:
        raise NotImplementedError


class InMemoryCartPersistence(CartPersistence):
    def __init__(self):
        self._carts: Dict[int, List[CartItem]] = {}

    def load(self, owner_id: int) -> List[CartItem]:
        return list(self._carts.get(owner_id, []))

    def save(self, owner_id: int, items: List[CartItem]) -> None:
        self._carts[owner_id] = list(items)

    def clear(self, owner_id: int) -> None:
        self._carts.pop(owner_id, None)


class RedisCartPersistence(CartPersistence):
    """Whole cart stored as one JSON document per owner"""

    def __init__(self, redis: Redis, ttl_seconds: Optional[int] = 30 * 24 * 3600):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(owner_id: int) -> str:
        return f"cart:items:{owner_id}"

    def load(self, owner_id: int) -> List[CartItem]:
        raw = self.redis.get(self._key(owner_id))
        if not raw:
            return []
        return [CartItem.model_validate(entry) for entry in json.loads(raw)]

    def save(self, owner_id: int, items: List[CartItem]) -> None:
        payload = json.dumps([item.model_dump(mode="json") for item in items])
        if self.ttl_seconds:
            self.redis.setex(self._key(owner_id), self.ttl_seconds, payload)
        else:
            self.redis.set(self._key(owner_id), payload)

    def clear(self, owner_id: int) -> None:
        self.redis.delete(self._key(owner_id))


class SqlCartPersistence(CartPersistence):
    """Cart lines in the cart_items table"""

    def __init__(self, db: Session):
        self.db = db

    def load(self, owner_id: int) -> List[CartItem]:
        rows = self.db.execute(
            select(CartEntry)
            .where(CartEntry.user_id == owner_id)
            .order_by(CartEntry.position, CartEntry.id)
        ).scalars().all()
        return [
            CartItem(
                offer_id=row.offer_id,
                quantity=row.quantity,
                business_id=row.business_id,
                offer=OfferSnapshot.model_validate(row.offer_snapshot),
            )
            for row in rows
        ]

    def save(self, owner_id: int, items: List[CartItem]) -> None:
        try:
            self.db.execute(delete(CartEntry).where(CartEntry.user_id == owner_id))
            for position, item in enumerate(items):
                self.db.add(CartEntry(
                    user_id=owner_id,
                    offer_id=item.offer_id,
                    business_id=item.business_id,
                    quantity=item.quantity,
                    offer_snapshot=item.offer.model_dump(mode="json"),
                    position=position,
                ))
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Saving cart failed: owner={owner_id}, error={str(e)}")
            raise

    def clear(self, owner_id: int) -> None:
        try:
            self.db.execute(delete(CartEntry).where(CartEntry.user_id == owner_id))
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Clearing cart failed: owner={owner_id}, error={str(e)}")
            raise
