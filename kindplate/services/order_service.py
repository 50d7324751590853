"""Order lifecycle: draft creation, confirmation, pickup and cancellation"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from redis import Redis
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from kindplate.core.config import settings
from kindplate.core.exceptions import (
    AlreadyPickedUpError,
    CodeNotFoundError,
    InsufficientQuantityError,
    InvalidOrderError,
    MultipleVendorsError,
    NoAuthorityError,
    OfferInactiveError,
    OfferNotFoundError,
    OrderNotEditableError,
    OrderNotFoundError,
    OrderNotReadyError,
)
from kindplate.models.business import Business
from kindplate.models.offer import Offer
from kindplate.models.order import REDEEMABLE_STATUSES, Order, OrderItem, OrderStatus
from kindplate.models.order_events import ActorType, OrderEvent
from kindplate.models.payment import ACTIVE_PAYMENT_STATUSES, Payment, PaymentStatus
from kindplate.schemas.order import (
    ConfirmOrderRequest,
    OrderConfig,
    OrderDraft,
    OrderItemSchema,
    PickupQr,
    UpdateOrderRequest,
)
from kindplate.services import pickup_codes
from kindplate.services.offer_service import offer_cache_key
from kindplate.services.order_draft import compute_totals

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderService:
    """Order core service"""

    def __init__(self, db: Session, redis: Redis = None, cart_service=None):
        self.db = db
        self.redis = redis
        self.cart_service = cart_service

    # ==================== queries ====================

    @staticmethod
    def get_config() -> OrderConfig:
        return OrderConfig(
            service_fee=settings.SERVICE_FEE,
            promocode_enabled=False,
            currency=settings.CURRENCY,
        )

    def load_order(self, order_id: int, for_update: bool = False) -> Optional[Order]:
        stmt = (
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.id == order_id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def get_order(self, user_id: int, order_id: int, for_update: bool = False) -> Order:
        """Order owned by the customer"""
        order = self.load_order(order_id, for_update)
        if order is None or order.user_id != user_id:
            raise OrderNotFoundError()
        return order

    def get_business_order(self, business_id: int, order_id: int, for_update: bool = False) -> Order:
        order = self.load_order(order_id, for_update)
        if order is None:
            raise OrderNotFoundError()
        if order.business_id != business_id:
            raise NoAuthorityError("Order belongs to another business")
        return order

    def list_orders(self, user_id: int) -> List[Order]:
        return list(self.db.execute(
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        ).scalars().all())

    def list_business_orders(self, business_id: int, status: Optional[OrderStatus] = None) -> List[Order]:
        stmt = (
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.business_id == business_id)
        )
        if status is not None:
            stmt = stmt.where(Order.status == status)
        return list(self.db.execute(stmt.order_by(Order.created_at.desc(), Order.id.desc())).scalars().all())

    # ==================== helpers ====================

    def _record_event(self, order_id: int, event_type: str, actor_type: ActorType,
                      actor_id: Optional[int] = None, metadata: Optional[Dict] = None) -> None:
        self.db.add(OrderEvent(
            order_id=order_id,
            event_type=event_type,
            actor_type=actor_type,
            actor_id=actor_id,
            event_metadata=metadata,
        ))

    def _invalidate_offers(self, offer_ids: Sequence[int]) -> None:
        if self.redis:
            for offer_id in offer_ids:
                self.redis.delete(offer_cache_key(offer_id))
                logger.debug(f"Cache invalidated for offer {offer_id}")

    def _validate_items(self, items: Sequence[OrderItemSchema], business_id: int) -> None:
        if not items:
            raise InvalidOrderError("Order must contain at least one item")
        business_ids = {item.business_id for item in items}
        if len(business_ids) > 1 or business_ids != {business_id}:
            raise MultipleVendorsError()

    def _reserve_items(self, items: Sequence[OrderItemSchema], business_id: int) -> None:
        """Check every offer and take the ordered units out of quantity_available"""
        requested: Dict[int, int] = {}
        titles: Dict[int, str] = {}
        for item in items:
            requested[item.offer_id] = requested.get(item.offer_id, 0) + item.quantity
            titles[item.offer_id] = item.title

        for offer_id, quantity in requested.items():
            offer = self.db.execute(
                select(Offer).where(Offer.id == offer_id).with_for_update()
            ).scalar_one_or_none()

            if offer is None:
                raise OfferNotFoundError(f"Offer \"{titles[offer_id]}\" not found")
            if offer.business_id != business_id:
                raise MultipleVendorsError()
            if not offer.is_active:
                raise OfferInactiveError(f"Offer \"{titles[offer_id]}\" is not available")
            if offer.quantity_available < quantity:
                raise InsufficientQuantityError(f"Not enough \"{titles[offer_id]}\" available")

            offer.quantity_available -= quantity

    def _release_items(self, order: Order) -> None:
        """Return the ordered units to their offers"""
        for item in order.items:
            offer = self.db.execute(
                select(Offer).where(Offer.id == item.offer_id).with_for_update()
            ).scalar_one_or_none()
            if offer is not None:
                offer.quantity_available += item.quantity

    @staticmethod
    def _build_items(items: Sequence[OrderItemSchema]) -> List[OrderItem]:
        return [
            OrderItem(
                offer_id=item.offer_id,
                quantity=item.quantity,
                price=item.discounted_price,
                title=item.title,
                pickup_time_start=item.pickup_time_start,
                pickup_time_end=item.pickup_time_end,
            )
            for item in items
        ]

    @staticmethod
    def _subtotal(items: Sequence[OrderItemSchema]) -> Decimal:
        return sum((Decimal(item.discounted_price) * item.quantity for item in items), Decimal("0"))

    def _new_pickup_code(self) -> str:
        for _ in range(10):
            code = pickup_codes.generate_pickup_code()
            taken = self.db.execute(
                select(Order.id).where(Order.pickup_code == code)
            ).scalar_one_or_none()
            if taken is None:
                return code
        raise RuntimeError("Could not allocate a unique pickup code")

    # ==================== customer operations ====================

    def create_draft(self, user_id: int, draft: OrderDraft) -> Order:
        """Persist a submitted draft as a new order.

        Totals are recomputed from the item snapshots; the service fee always
        comes from configuration. The customer's cart is cleared afterwards.
        """
        self._validate_items(draft.items, draft.business_id)
        if not draft.pickup_time_start or not draft.pickup_time_end:
            raise InvalidOrderError("Pickup time is required")

        business = self.db.get(Business, draft.business_id)
        if business is None:
            raise InvalidOrderError("Business information is required")

        subtotal, service_fee, discount, total = compute_totals(
            self._subtotal(draft.items), settings.SERVICE_FEE
        )
        if Decimal(draft.total) != total:
            logger.warning(
                f"Client draft total {draft.total} differs from computed {total} (user_id={user_id})"
            )

        try:
            self._reserve_items(draft.items, draft.business_id)

            order = Order(
                user_id=user_id,
                business_id=business.id,
                business_name=business.name,
                business_address=business.address,
                pickup_time_start=draft.pickup_time_start,
                pickup_time_end=draft.pickup_time_end,
                subtotal=subtotal,
                service_fee=service_fee,
                promocode_discount=discount,
                total=total,
                status=OrderStatus.NEW,
                notes=draft.notes,
                pickup_code=self._new_pickup_code(),
                items=self._build_items(draft.items),
            )
            self.db.add(order)
            self.db.flush()

            self._record_event(order.id, "created", ActorType.USER, user_id, {
                "items": len(draft.items),
                "total": str(total),
            })
            self.db.commit()
            logger.info(f"Order draft created: order_id={order.id}, user_id={user_id}, total={total}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Creating order draft failed: {str(e)}")
            raise

        self._invalidate_offers([item.offer_id for item in draft.items])
        if self.cart_service is not None:
            self.cart_service.clear_cart(user_id)
        return order

    def update_order(self, user_id: int, order_id: int, request: UpdateOrderRequest) -> Order:
        """Edit a new order's pickup window, notes or items"""
        try:
            order = self.get_order(user_id, order_id, for_update=True)
            if order.status != OrderStatus.NEW:
                raise OrderNotEditableError()

            if request.pickup_time_start:
                order.pickup_time_start = request.pickup_time_start
            if request.pickup_time_end:
                order.pickup_time_end = request.pickup_time_end
            if request.notes is not None:
                order.notes = request.notes

            changed_offers: List[int] = []
            if request.items:
                self._validate_items(request.items, order.business_id)
                changed_offers = [item.offer_id for item in order.items]
                self._release_items(order)
                self.db.flush()
                self._reserve_items(request.items, order.business_id)

                order.items = self._build_items(request.items)
                subtotal, service_fee, discount, total = compute_totals(
                    self._subtotal(request.items), settings.SERVICE_FEE
                )
                order.subtotal = subtotal
                order.service_fee = service_fee
                order.promocode_discount = discount
                order.total = total
                changed_offers += [item.offer_id for item in request.items]

            self._record_event(order.id, "updated", ActorType.USER, user_id)
            self.db.commit()
            logger.info(f"Order updated: order_id={order_id}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Updating order failed: order_id={order_id}, error={str(e)}")
            raise

        self._invalidate_offers(changed_offers)
        return order

    def confirm_order(self, user_id: int, order_id: int, request: ConfirmOrderRequest) -> Order:
        """new -> confirmed"""
        try:
            order = self.get_order(user_id, order_id, for_update=True)
            if order.status != OrderStatus.NEW:
                raise OrderNotEditableError("Order cannot be confirmed")

            if request.pickup_time_start:
                order.pickup_time_start = request.pickup_time_start
            if request.pickup_time_end:
                order.pickup_time_end = request.pickup_time_end
            if request.notes is not None:
                order.notes = request.notes

            order.status = OrderStatus.CONFIRMED
            order.confirmed_at = utcnow()
            self._record_event(order.id, "confirmed", ActorType.USER, user_id)
            self.db.commit()
            logger.info(f"Order confirmed: order_id={order_id}")
            return order
        except Exception as e:
            self.db.rollback()
            logger.error(f"Confirming order failed: order_id={order_id}, error={str(e)}")
            raise

    def cancel_order(self, user_id: int, order_id: int) -> Order:
        """new|confirmed -> cancelled, units go back to the offers"""
        try:
            order = self.get_order(user_id, order_id, for_update=True)
            if order.status not in (OrderStatus.NEW, OrderStatus.CONFIRMED) or order.paid_at:
                raise OrderNotEditableError("Order cannot be cancelled")
            self._cancel(order, ActorType.USER, user_id, reason="customer")
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Cancelling order failed: order_id={order_id}, error={str(e)}")
            raise

        self._invalidate_offers([item.offer_id for item in order.items])
        logger.info(f"Order cancelled: order_id={order_id}")
        return order

    def _cancel(self, order: Order, actor_type: ActorType, actor_id: Optional[int], reason: str) -> None:
        self._release_items(order)
        self._cancel_open_payments(order)
        order.status = OrderStatus.CANCELLED
        order.cancelled_at = utcnow()
        self._record_event(order.id, "cancelled", actor_type, actor_id, {"reason": reason})

    def _cancel_open_payments(self, order: Order) -> None:
        payments = self.db.execute(
            select(Payment).where(Payment.order_id == order.id).with_for_update()
        ).scalars().all()
        for payment in payments:
            # the caller may already have moved this payment on in the session
            if payment.status in ACTIVE_PAYMENT_STATUSES:
                payment.status = PaymentStatus.CANCELLED
                logger.info(f"Payment cancelled with its order: payment_id={payment.id}, order_id={order.id}")

    def _check_redeemable(self, order: Order) -> None:
        if order.status == OrderStatus.PICKED_UP:
            raise AlreadyPickedUpError()
        if order.status not in REDEEMABLE_STATUSES or order.paid_at is None:
            raise OrderNotReadyError(f"Order is {order.status.value}, not ready for pickup")

    def issue_pickup_qr(self, user_id: int, order_id: int) -> PickupQr:
        """Fresh signed QR payload for the customer's pickup screen"""
        order = self.get_order(user_id, order_id)
        self._check_redeemable(order)

        claim = pickup_codes.issue_qr_payload(
            order.id, order.pickup_code, settings.QR_TTL_SECONDS, settings.QR_SECRET
        )
        payload = pickup_codes.sign_qr_payload(
            claim.order_id, claim.pickup_code, claim.expires_at, settings.QR_SECRET
        )
        return PickupQr(
            order_id=order.id,
            pickup_code=order.pickup_code,
            qr_payload=payload,
            expires_at=claim.expires_at,
        )

    # ==================== business operations ====================

    def mark_ready(self, business_id: int, order_id: int) -> Order:
        """confirmed (and paid) -> ready_for_pickup"""
        try:
            order = self.get_business_order(business_id, order_id, for_update=True)
            if order.status != OrderStatus.CONFIRMED or order.paid_at is None:
                raise OrderNotReadyError("Only paid, confirmed orders can be marked ready")
            order.status = OrderStatus.READY_FOR_PICKUP
            self._record_event(order.id, "ready", ActorType.BUSINESS, business_id)
            self.db.commit()
            logger.info(f"Order ready for pickup: order_id={order_id}")
            return order
        except Exception as e:
            self.db.rollback()
            logger.error(f"Marking order ready failed: order_id={order_id}, error={str(e)}")
            raise

    def redeem_pickup(self, business_id: int, code: str) -> Order:
        """Hand out an order by pickup code or scanned QR payload"""
        try:
            if pickup_codes.is_qr_payload(code):
                claim = pickup_codes.parse_qr_payload(code, settings.QR_SECRET)
                order = self.load_order(claim.order_id, for_update=True)
                if order is None or order.pickup_code != claim.pickup_code:
                    raise CodeNotFoundError()
            else:
                order = self.db.execute(
                    select(Order)
                    .where(Order.pickup_code == pickup_codes.normalize_code(code))
                    .with_for_update()
                ).scalar_one_or_none()
                if order is None:
                    raise CodeNotFoundError()

            if order.business_id != business_id:
                raise NoAuthorityError("Order belongs to another business")
            self._check_redeemable(order)

            order.status = OrderStatus.PICKED_UP
            order.pickup_verified_at = utcnow()
            self._record_event(order.id, "picked_up", ActorType.BUSINESS, business_id, {
                "method": "qr" if pickup_codes.is_qr_payload(code) else "code",
            })
            self.db.commit()
            logger.info(f"Order picked up: order_id={order.id}, business_id={business_id}")
            return order
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Pickup redemption rejected: business_id={business_id}, error={str(e)}")
            raise

    # ==================== payment callbacks ====================

    def mark_paid(self, order: Order, payment_id: int) -> None:
        order.paid_at = utcnow()
        self._record_event(order.id, "paid", ActorType.SYSTEM, None, {"payment_id": payment_id})

    def flag_refund(self, order: Order, payment: Payment) -> None:
        """Payment captured after the order was closed"""
        payment.refund_required = True
        self._record_event(order.id, "refund_required", ActorType.SYSTEM, None, {"payment_id": payment.id})
        logger.warning(
            f"Payment succeeded for {order.status.value} order, refund required: "
            f"order_id={order.id}, payment_id={payment.id}"
        )

    def mark_payment_failed(self, order: Order, payment_id: int, status: str) -> None:
        if order.status in (OrderStatus.NEW, OrderStatus.CONFIRMED):
            self._cancel(order, ActorType.SYSTEM, None, reason=f"payment_{status}")
            self._invalidate_offers([item.offer_id for item in order.items])

    def mark_refunded(self, order: Order, payment_id: int) -> None:
        if order.status not in (OrderStatus.PICKED_UP, OrderStatus.CANCELLED):
            self._release_items(order)
        order.status = OrderStatus.REFUNDED
        self._record_event(order.id, "refunded", ActorType.SYSTEM, None, {"payment_id": payment_id})

    # ==================== maintenance ====================

    def cancel_stale_orders(self, ttl_minutes: int = None, batch_size: int = 500) -> int:
        """Cancel orders stuck in "new" for longer than ttl_minutes"""
        ttl_minutes = ttl_minutes or settings.DRAFT_ORDER_TTL_MINUTES
        cutoff = utcnow() - timedelta(minutes=ttl_minutes)
        total_cancelled = 0

        while True:
            try:
                stale_orders = self.db.execute(
                    select(Order)
                    .options(selectinload(Order.items))
                    .where(
                        Order.status == OrderStatus.NEW,
                        Order.created_at <= cutoff,
                    )
                    .limit(batch_size)
                    .with_for_update(skip_locked=True)
                ).scalars().all()

                if not stale_orders:
                    break

                logger.info(f"Cancelling {len(stale_orders)} stale orders in this batch")
                offer_ids = []
                for order in stale_orders:
                    self._cancel(order, ActorType.SYSTEM, None, reason="expired")
                    offer_ids += [item.offer_id for item in order.items]
                    total_cancelled += 1

                self.db.commit()
                self._invalidate_offers(offer_ids)

                if len(stale_orders) < batch_size:
                    break

            except Exception as e:
                logger.error(f"Stale order cleanup failed: {str(e)}")
                self.db.rollback()
                break

        logger.info(f"Stale order cleanup finished, cancelled {total_cancelled} orders")
        return total_cancelled
