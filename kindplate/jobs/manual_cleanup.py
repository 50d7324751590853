"""Run order and payment cleanup locally, outside of Celery"""

import argparse
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select

from kindplate.core.config import settings
from kindplate.core.redis import redis_client, redlock
from kindplate.db.session import SessionLocal
from kindplate.models.order import Order, OrderStatus
from kindplate.services.order_service import OrderService
from kindplate.services.payment_service import PaymentService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def count_stale_orders(db, ttl_minutes: int) -> int:
    cutoff = datetime.now(timezone.utc) - timedelta(minutes=ttl_minutes)
    return db.execute(
        select(func.count(Order.id)).where(
            Order.status == OrderStatus.NEW,
            Order.created_at <= cutoff,
        )
    ).scalar_one()


def run_cleanup(batch_size: int = 500, ttl_minutes: int = None, dry_run: bool = False,
                session_factory=SessionLocal) -> int:
    """Cancel stale orders and purge expired idempotency keys

    Args:
        batch_size: orders handled per transaction
        ttl_minutes: age after which a new order is stale
        dry_run: only count stale orders, change nothing
    """
    ttl_minutes = ttl_minutes or settings.DRAFT_ORDER_TTL_MINUTES
    db = session_factory()
    try:
        if dry_run:
            stale_count = count_stale_orders(db, ttl_minutes)
            logger.info(f"Dry run: {stale_count} stale orders would be cancelled")
            return stale_count

        count = OrderService(db, redis_client).cancel_stale_orders(ttl_minutes, batch_size)
        PaymentService(db, redis_client, redlock).purge_expired_idempotency_keys()
        logger.info(f"Cleanup finished: cancelled {count} stale orders")
        return count

    except Exception as e:
        logger.error(f"Cleanup failed: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()


def main(argv=None):
    parser = argparse.ArgumentParser(description='Stale order cleanup')
    parser.add_argument(
        '--batch-size',
        type=int,
        default=500,
        help='orders per transaction (default: 500)'
    )
    parser.add_argument(
        '--ttl-minutes',
        type=int,
        default=None,
        help=f'age of a stale order (default: {settings.DRAFT_ORDER_TTL_MINUTES})'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='only count stale orders'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='debug logging'
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        result = run_cleanup(args.batch_size, args.ttl_minutes, args.dry_run)
        if args.dry_run:
            print(f"Dry run: {result} stale orders found")
        else:
            print(f"Cleanup finished: {result} orders cancelled")
    except Exception as e:
        print(f"Cleanup failed: {str(e)}")
        return 1

    return 0


if __name__ == "__main__":
    exit(main())
