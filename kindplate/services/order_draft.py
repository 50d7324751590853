"""Order draft builder: cart items in, checkout payload out"""

import logging
from datetime import datetime, time
from decimal import Decimal
from typing import Optional, Sequence, Tuple

from kindplate.schemas.cart import CartItem
from kindplate.schemas.common import to_money
from kindplate.schemas.order import OrderDraft, OrderItemSchema
from kindplate.services.cart_store import total_price

logger = logging.getLogger(__name__)

DEFAULT_PICKUP_START = "00:00"
DEFAULT_PICKUP_END = "19:00"


def time_of_day(value: str) -> time:
    """Parse "HH:MM" (also accepts "H:MM" and "HH:MM:SS")"""
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time of day: {value!r}")


def aggregate_pickup_window(
    items: Sequence[CartItem],
    default_start: str = DEFAULT_PICKUP_START,
    default_end: str = DEFAULT_PICKUP_END,
) -> Tuple[str, str]:
    """Overall pickup window of a cart.

    Start comes from the first item, end is the latest item end by
    time-of-day. Windows that cross midnight are not handled.
    """
    start = default_start
    if items and items[0].offer.pickup_time_start:
        start = items[0].offer.pickup_time_start

    ends = [item.offer.pickup_time_end for item in items if item.offer.pickup_time_end]
    end = max(ends, key=time_of_day) if ends else default_end
    return start, end


def compute_totals(
    subtotal: Decimal,
    service_fee: Decimal,
    promocode_discount: Decimal = Decimal("0"),
) -> Tuple[Decimal, Decimal, Decimal, Decimal]:
    """(subtotal, service_fee, promocode_discount, total), rounded to kopecks"""
    subtotal = to_money(subtotal)
    service_fee = to_money(service_fee)
    promocode_discount = to_money(promocode_discount)
    total = max(subtotal + service_fee - promocode_discount, Decimal("0.00"))
    return subtotal, service_fee, promocode_discount, total


def build_order_draft(
    items: Sequence[CartItem],
    service_fee: Decimal,
    notes: Optional[str] = None,
    default_start: str = DEFAULT_PICKUP_START,
    default_end: str = DEFAULT_PICKUP_END,
) -> Optional[OrderDraft]:
    """Assemble the checkout payload, or None when checkout is not possible.

    Item snapshots (title, price, pickup window) are copied as they are,
    without looking at the current state of the offers.
    """
    if not items:
        return None

    business = items[0].offer.business
    if not business or not business.id:
        logger.warning("Cart has no resolvable business, draft not built")
        return None

    pickup_start, pickup_end = aggregate_pickup_window(items, default_start, default_end)
    subtotal, fee, discount, total = compute_totals(total_price(items), service_fee)

    return OrderDraft(
        items=[
            OrderItemSchema(
                offer_id=item.offer_id,
                quantity=item.quantity,
                business_id=item.business_id,
                title=item.offer.title,
                discounted_price=item.offer.discounted_price,
                pickup_time_start=item.offer.pickup_time_start or pickup_start,
                pickup_time_end=item.offer.pickup_time_end or pickup_end,
            )
            for item in items
        ],
        pickup_time_start=pickup_start,
        pickup_time_end=pickup_end,
        business_id=business.id,
        business_name=business.name,
        business_address=business.address,
        subtotal=subtotal,
        service_fee=fee,
        promocode_discount=discount,
        total=total,
        notes=notes,
    )
