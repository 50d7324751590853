"""Payment initiation, status lookups and provider webhooks"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from redis import Redis
from redlock import Redlock
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kindplate.core.config import settings
from kindplate.core.exceptions import (
    InvalidAmountError,
    OrderNotConfirmedError,
    OrderNotEditableError,
    OrderNotFoundError,
    PaymentInProgressError,
    PaymentNotFoundError,
)
from kindplate.models.idempotency_keys import IdempotencyKey, IdempotencyStatus
from kindplate.models.order import Order, OrderStatus
from kindplate.models.payment import (
    ACTIVE_PAYMENT_STATUSES,
    Payment,
    PaymentStatus,
)
from kindplate.schemas.payment import CreatePaymentRequest, PaymentInitiation, PaymentWebhook
from kindplate.services.order_service import OrderService

logger = logging.getLogger(__name__)

IDEMPOTENCY_SCOPE = "payment:create"
TERMINAL_PAYMENT_STATUSES = (
    PaymentStatus.SUCCEEDED,
    PaymentStatus.FAILED,
    PaymentStatus.CANCELLED,
    PaymentStatus.REFUNDED,
)
CLOSED_ORDER_STATUSES = (OrderStatus.CANCELLED, OrderStatus.REFUNDED)


def payment_lock_key(order_id: int) -> str:
    return f"lock:payment:{order_id}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_expired(moment: Optional[datetime]) -> bool:
    if moment is None:
        return False
    # SQLite hands back naive UTC values
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment <= utcnow()


class PaymentService:
    """Payment core service"""

    def __init__(self, db: Session, redis: Redis = None, rlock: Redlock = None):
        self.db = db
        self.redis = redis
        self.rlock = rlock
        self.orders = OrderService(db, redis)

    # ==================== idempotency ====================

    @staticmethod
    def _scoped_key(user_id: int, idempotency_key: str) -> str:
        return f"{IDEMPOTENCY_SCOPE}:{user_id}:{idempotency_key}"[:200]

    def _claim_idempotency_key(self, key: str, user_id: int) -> Optional[PaymentInitiation]:
        """Replay a finished call, or register the key as in progress"""
        record = self.db.get(IdempotencyKey, key)

        if record is not None and is_expired(record.expires_at):
            self.db.delete(record)
            self.db.flush()
            record = None

        if record is not None:
            if record.status == IdempotencyStatus.SUCCESS and record.response_snapshot:
                logger.info(f"Idempotent replay of payment creation: key={key}")
                return PaymentInitiation.model_validate(record.response_snapshot)
            if record.status == IdempotencyStatus.PROCESSING:
                raise PaymentInProgressError()
            # failed attempts may be retried with the same key
            self.db.delete(record)
            self.db.flush()

        try:
            self.db.add(IdempotencyKey(
                key=key,
                scope=IDEMPOTENCY_SCOPE,
                user_id=user_id,
                status=IdempotencyStatus.PROCESSING,
                expires_at=utcnow() + timedelta(hours=settings.IDEMPOTENCY_TTL_HOURS),
            ))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise PaymentInProgressError()
        return None

    def _finish_idempotency_key(self, key: str, status: IdempotencyStatus,
                                snapshot: Optional[dict] = None) -> None:
        record = self.db.get(IdempotencyKey, key)
        if record is None:
            return
        record.status = status
        record.response_snapshot = snapshot
        self.db.commit()

    # ==================== creation ====================

    def create_payment(self, user_id: int, request: CreatePaymentRequest,
                       idempotency_key: Optional[str] = None) -> PaymentInitiation:
        """Start a payment for a confirmed order.

        An order never gets two active payments: a pending or processing one
        is handed back instead. Repeating a call with the same Idempotency-Key
        returns the first response without touching the provider again.
        """
        scoped_key = self._scoped_key(user_id, idempotency_key) if idempotency_key else None
        if scoped_key:
            replay = self._claim_idempotency_key(scoped_key, user_id)
            if replay is not None:
                return replay

        lock = None
        if self.rlock:
            lock = self.rlock.lock(payment_lock_key(request.order_id), 10000)
            if not lock:
                if scoped_key:
                    self._finish_idempotency_key(scoped_key, IdempotencyStatus.FAILED)
                raise PaymentInProgressError()

        try:
            order = self.db.execute(
                select(Order).where(Order.id == request.order_id).with_for_update()
            ).scalar_one_or_none()
            if order is None or order.user_id != user_id:
                raise OrderNotFoundError()
            if order.paid_at is not None:
                raise OrderNotEditableError("Order is already paid")
            if order.status != OrderStatus.CONFIRMED:
                raise OrderNotConfirmedError()

            payment = self.db.execute(
                select(Payment)
                .where(
                    Payment.order_id == order.id,
                    Payment.status.in_(ACTIVE_PAYMENT_STATUSES),
                )
                .order_by(Payment.id.desc())
                .limit(1)
            ).scalar_one_or_none()

            if payment is not None:
                logger.info(f"Reusing active payment: payment_id={payment.id}, order_id={order.id}")
            else:
                payment = Payment(
                    order_id=order.id,
                    user_id=user_id,
                    amount=order.total,
                    currency=settings.CURRENCY,
                    payment_method=request.payment_method,
                    status=PaymentStatus.PENDING,
                    return_url=request.return_url,
                )
                self.db.add(payment)
                self.db.flush()
                base_url = settings.PAYMENT_PROVIDER_URLS[request.payment_method.value]
                payment.payment_url = f"{base_url}/{payment.id}"
                self.db.commit()
                logger.info(
                    f"Payment created: payment_id={payment.id}, order_id={order.id}, amount={payment.amount}"
                )

            initiation = PaymentInitiation(
                payment_id=payment.id,
                order_id=order.id,
                payment_url=payment.payment_url,
                amount=payment.amount,
                currency=payment.currency,
                status=payment.status,
                redirect_delay_ms=settings.PAYMENT_REDIRECT_DELAY_MS,
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Creating payment failed: order_id={request.order_id}, error={str(e)}")
            if scoped_key:
                self._finish_idempotency_key(scoped_key, IdempotencyStatus.FAILED)
            raise
        finally:
            if self.rlock and lock:
                self.rlock.unlock(lock)

        if scoped_key:
            self._finish_idempotency_key(
                scoped_key, IdempotencyStatus.SUCCESS, initiation.model_dump(mode="json")
            )
        return initiation

    # ==================== queries ====================

    def get_payment_status(self, user_id: int, payment_id: int) -> Payment:
        payment = self.db.get(Payment, payment_id)
        if payment is None or payment.user_id != user_id:
            raise PaymentNotFoundError()
        return payment

    def get_order_payment_status(self, user_id: int, order_id: int) -> Payment:
        """Latest payment of an order"""
        payment = self.db.execute(
            select(Payment)
            .where(Payment.order_id == order_id, Payment.user_id == user_id)
            .order_by(Payment.id.desc())
            .limit(1)
        ).scalar_one_or_none()
        if payment is None:
            raise PaymentNotFoundError("No payment for this order")
        return payment

    def list_payments(self, user_id: int) -> List[Payment]:
        return list(self.db.execute(
            select(Payment)
            .where(Payment.user_id == user_id)
            .order_by(Payment.id.desc())
        ).scalars().all())

    # ==================== webhook ====================

    def handle_webhook(self, webhook: PaymentWebhook) -> Payment:
        """Apply a provider status notification to the payment and its order"""
        try:
            payment = self.db.execute(
                select(Payment).where(Payment.id == webhook.payment_id).with_for_update()
            ).scalar_one_or_none()
            if payment is None:
                raise PaymentNotFoundError()
            if Decimal(webhook.amount) != Decimal(payment.amount):
                raise InvalidAmountError()

            if webhook.status == payment.status:
                logger.info(f"Duplicate webhook ignored: payment_id={payment.id}, status={webhook.status.value}")
                return payment

            refund = (payment.status == PaymentStatus.SUCCEEDED
                      and webhook.status == PaymentStatus.REFUNDED)
            # cancelled on our side together with its order, captured by the provider anyway
            late_capture = (payment.status == PaymentStatus.CANCELLED
                            and webhook.status == PaymentStatus.SUCCEEDED)
            if payment.status in TERMINAL_PAYMENT_STATUSES and not (refund or late_capture):
                logger.warning(
                    f"Webhook for finished payment ignored: payment_id={payment.id}, "
                    f"{payment.status.value} -> {webhook.status.value}"
                )
                return payment

            order = self.orders.load_order(payment.order_id, for_update=True)
            payment.status = webhook.status

            if webhook.status == PaymentStatus.SUCCEEDED:
                if order.status in CLOSED_ORDER_STATUSES:
                    self.orders.flag_refund(order, payment)
                else:
                    self.orders.mark_paid(order, payment.id)
            elif webhook.status in (PaymentStatus.FAILED, PaymentStatus.CANCELLED):
                self.orders.mark_payment_failed(order, payment.id, webhook.status.value)
            elif webhook.status == PaymentStatus.REFUNDED:
                payment.refund_required = False
                self.orders.mark_refunded(order, payment.id)

            self.db.commit()
            logger.info(f"Payment status updated: payment_id={payment.id}, status={webhook.status.value}")
            return payment
        except Exception as e:
            self.db.rollback()
            logger.error(f"Handling payment webhook failed: payment_id={webhook.payment_id}, error={str(e)}")
            raise

    # ==================== maintenance ====================

    def purge_expired_idempotency_keys(self) -> int:
        try:
            result = self.db.execute(
                delete(IdempotencyKey).where(IdempotencyKey.expires_at <= utcnow())
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            logger.info(f"Purged {result.rowcount} expired idempotency keys")
            return result.rowcount
        except Exception as e:
            self.db.rollback()
            logger.error(f"Purging idempotency keys failed: {str(e)}")
            raise
