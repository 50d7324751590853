"""Periodic order and payment maintenance tasks"""

from celery_app import app
from kindplate.db.session import SessionLocal
from kindplate.services.order_service import OrderService
from kindplate.services.payment_service import PaymentService
from kindplate.core.redis import redis_client, redlock
import logging

logger = logging.getLogger(__name__)


@app.task(name='tasks.orders.cancel_stale_orders')
def cancel_stale_orders(ttl_minutes: int = None, batch_size: int = 500):
    """Cancel orders left unconfirmed past their TTL and return their units to stock

    Args:
        ttl_minutes: age after which a new order is stale, DRAFT_ORDER_TTL_MINUTES by default
        batch_size: orders handled per transaction
    """
    db = SessionLocal()
    try:
        service = OrderService(db, redis_client)
        count = service.cancel_stale_orders(ttl_minutes, batch_size)
        result = f"Cancelled {count} stale orders"
        logger.info(result)
        return result
    except Exception as e:
        logger.error(f"Stale order task failed: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()


@app.task(name='tasks.payments.purge_idempotency_keys')
def purge_idempotency_keys():
    """Drop idempotency records past their expiry"""
    db = SessionLocal()
    try:
        service = PaymentService(db, redis_client, redlock)
        count = service.purge_expired_idempotency_keys()
        return f"Purged {count} idempotency keys"
    except Exception as e:
        logger.error(f"Idempotency key purge failed: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()


__all__ = [
    'cancel_stale_orders',
    'purge_idempotency_keys',
]
