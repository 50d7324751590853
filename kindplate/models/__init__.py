# Models
from .business import Business
from .offer import Offer
from .cart_entries import CartEntry
from .order import Order, OrderItem, OrderStatus
from .order_events import OrderEvent, ActorType
from .payment import Payment, PaymentMethod, PaymentStatus
from .idempotency_keys import IdempotencyKey, IdempotencyStatus

__all__ = [
    "Business",
    "Offer",
    "CartEntry",
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderEvent",
    "ActorType",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "IdempotencyKey",
    "IdempotencyStatus",
]
