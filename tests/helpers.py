"""Builders shared by the test modules"""
from decimal import Decimal

from kindplate.models.offer import Offer
from kindplate.schemas.cart import BusinessSnapshot, CartItem, OfferSnapshot


def make_offer(db_session, business, **overrides):
    values = {
        "business_id": business.id,
        "title": "Croissant box",
        "original_price": Decimal("200.00"),
        "discounted_price": Decimal("100.00"),
        "quantity_available": 10,
        "pickup_time_start": "18:00",
        "pickup_time_end": "20:00",
        "is_active": True,
    }
    values.update(overrides)
    offer = Offer(**values)
    db_session.add(offer)
    db_session.commit()
    db_session.refresh(offer)
    return offer


def snapshot(offer_id, business_id=1, price="100", business_name=None,
             start="18:00", end="20:00"):
    return OfferSnapshot(
        id=offer_id,
        title=f"Offer {offer_id}",
        original_price=Decimal(price) * 2,
        discounted_price=Decimal(price),
        pickup_time_start=start,
        pickup_time_end=end,
        business=BusinessSnapshot(
            id=business_id,
            name=business_name or f"Business {business_id}",
            address=f"Street {business_id}",
        ),
    )


def cart_item(offer_id, quantity=1, **kwargs):
    offer = snapshot(offer_id, **kwargs)
    return CartItem(offer_id=offer_id, quantity=quantity, business_id=offer.business.id, offer=offer)
