"""Dependency injection wiring"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from kindplate.core.config import settings
from kindplate.core.redis import redis_client, redlock, async_redis
from kindplate.db.session import SessionLocal
from kindplate.services.cart_persistence import (
    CartPersistence,
    RedisCartPersistence,
    SqlCartPersistence,
)
from kindplate.services.cart_service import CartService
from kindplate.services.offer_service import OfferService
from kindplate.services.order_service import OrderService
from kindplate.services.payment_service import PaymentService

logger = logging.getLogger(__name__)


def get_redis():
    """Sync Redis client, or None when Redis is unreachable"""
    try:
        redis_client.ping()
        return redis_client
    except Exception as e:
        logger.warning(f"Redis unavailable, running without cache: {str(e)}")
        return None


def get_async_redis():
    return async_redis


def get_redlock():
    """Redlock instance, or None when no lock servers are configured"""
    if not getattr(redlock, "servers", None):
        return None
    return redlock


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(x_user_id: Optional[int] = Header(None)) -> int:
    """Customer identity forwarded by the auth gateway"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id


def get_current_business_id(x_business_id: Optional[int] = Header(None)) -> int:
    """Business identity forwarded by the auth gateway"""
    if not x_business_id:
        raise HTTPException(status_code=403, detail="Business account required")
    return x_business_id


def get_cart_persistence(
    db: Session = Depends(get_db),
    redis=Depends(get_redis),
) -> CartPersistence:
    """Redis-backed carts when configured and reachable, the database otherwise"""
    if settings.CART_BACKEND == "redis" and redis is not None:
        return RedisCartPersistence(redis)
    return SqlCartPersistence(db)


def get_offer_service(
    db: Session = Depends(get_db),
    redis=Depends(get_redis),
) -> OfferService:
    return OfferService(db=db, redis=redis)


def get_cart_service(
    db: Session = Depends(get_db),
    redis=Depends(get_redis),
    persistence: CartPersistence = Depends(get_cart_persistence),
) -> CartService:
    return CartService(db=db, persistence=persistence, redis=redis)


def get_order_service(
    db: Session = Depends(get_db),
    redis=Depends(get_redis),
    cart_service: CartService = Depends(get_cart_service),
) -> OrderService:
    return OrderService(db=db, redis=redis, cart_service=cart_service)


def get_payment_service(
    db: Session = Depends(get_db),
    redis=Depends(get_redis),
    rlock=Depends(get_redlock),
) -> PaymentService:
    return PaymentService(db=db, redis=redis, rlock=rlock)


# common aliases
DatabaseDep = Depends(get_db)
RedisDep = Depends(get_redis)
RedlockDep = Depends(get_redlock)
CurrentUserDep = Depends(get_current_user_id)
CurrentBusinessDep = Depends(get_current_business_id)
CartServiceDep = Depends(get_cart_service)
OfferServiceDep = Depends(get_offer_service)
OrderServiceDep = Depends(get_order_service)
PaymentServiceDep = Depends(get_payment_service)
