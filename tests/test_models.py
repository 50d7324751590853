"""Model tests"""
import pytest
from decimal import Decimal
from sqlalchemy.exc import IntegrityError

from kindplate.models import (
    ActorType,
    CartEntry,
    Order,
    OrderEvent,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
)


def make_order(db_session, business, pickup_code="ABC234"):
    order = Order(
        user_id=1,
        business_id=business.id,
        business_name=business.name,
        business_address=business.address,
        pickup_time_start="18:00",
        pickup_time_end="20:00",
        subtotal=Decimal("100.00"),
        service_fee=Decimal("50.00"),
        total=Decimal("150.00"),
        pickup_code=pickup_code,
        items=[OrderItem(offer_id=1, quantity=1, price=Decimal("100.00"), title="Box",
                         pickup_time_start="18:00", pickup_time_end="20:00")],
    )
    db_session.add(order)
    db_session.commit()
    return order


class TestModels:

    def test_offer_defaults(self, db_session, offer):
        assert offer.id is not None
        assert offer.is_active is True
        assert offer.created_at is not None
        assert offer.business.name == "Bakery"

    def test_order_defaults(self, db_session, business):
        order = make_order(db_session, business)

        saved = db_session.get(Order, order.id)
        assert saved.status == OrderStatus.NEW
        assert saved.promocode_discount == Decimal("0")
        assert saved.created_at is not None
        assert len(saved.items) == 1

    def test_pickup_code_is_unique(self, db_session, business):
        make_order(db_session, business, pickup_code="SAME22")

        with pytest.raises(IntegrityError):
            make_order(db_session, business, pickup_code="SAME22")
        db_session.rollback()

    def test_order_event_metadata(self, db_session, business):
        order = make_order(db_session, business)
        db_session.add(OrderEvent(order_id=order.id, event_type="created", actor_type=ActorType.USER,
                                  actor_id=1, event_metadata={"total": "150.00"}))
        db_session.commit()

        event = db_session.query(OrderEvent).one()
        assert event.event_metadata == {"total": "150.00"}
        assert event.actor_type == ActorType.USER

    def test_payment_defaults(self, db_session, business):
        order = make_order(db_session, business)
        payment = Payment(order_id=order.id, user_id=1, amount=Decimal("150.00"), currency="RUB",
                          payment_method=PaymentMethod.SBP)
        db_session.add(payment)
        db_session.commit()

        assert db_session.get(Payment, payment.id).status == PaymentStatus.PENDING
        assert db_session.get(Payment, payment.id).refund_required is False

    def test_cart_entry_unique_per_offer(self, db_session):
        db_session.add(CartEntry(user_id=1, offer_id=5, business_id=1, quantity=1, offer_snapshot={}))
        db_session.add(CartEntry(user_id=1, offer_id=5, business_id=1, quantity=2, offer_snapshot={}))

        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()
