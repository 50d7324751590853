"""Cart store.

The module-level functions are pure transitions over a list of cart items:
they never mutate their input and return the next list. ``CartStore`` binds
them to one owner and a persistence adapter, saving after every mutation and
notifying ``on_change`` so cached cart views can be dropped.
"""

import logging
from decimal import Decimal
from typing import Callable, List, Optional, Sequence

from kindplate.core.exceptions import (
    ItemNotInCartError,
    QuantityLimitError,
    VendorConflictError,
)
from kindplate.schemas.cart import CartItem, OfferSnapshot
from kindplate.services.cart_persistence import CartPersistence
from kindplate.services.vendor_guard import find_vendor_conflict

logger = logging.getLogger(__name__)

DEFAULT_MAX_QUANTITY = 100


# ==================== pure transitions ====================

def find_item(items: Sequence[CartItem], offer_id: int) -> Optional[CartItem]:
    for item in items:
        if item.offer_id == offer_id:
            return item
    return None


def add_item(
    items: Sequence[CartItem],
    offer: OfferSnapshot,
    quantity: int,
    max_quantity: int = DEFAULT_MAX_QUANTITY,
) -> List[CartItem]:
    """Append the offer or merge it into its existing line, capped at max_quantity.

    Raises VendorConflictError when the cart belongs to another business.
    """
    if quantity < 1:
        raise QuantityLimitError("Quantity must be at least 1")

    conflict = find_vendor_conflict(items, offer)
    if conflict:
        raise VendorConflictError(conflict)

    existing = find_item(items, offer.id)
    new_quantity = min(quantity + (existing.quantity if existing else 0), max_quantity)

    line = CartItem(
        offer_id=offer.id,
        quantity=new_quantity,
        business_id=offer.business.id,
        offer=offer,
    )
    if existing is None:
        return [*items, line]
    return [line if item.offer_id == offer.id else item for item in items]


def update_item(
    items: Sequence[CartItem],
    offer_id: int,
    quantity: int,
    max_quantity: int = DEFAULT_MAX_QUANTITY,
) -> List[CartItem]:
    """Set the quantity of a line; zero or less removes it"""
    if find_item(items, offer_id) is None:
        raise ItemNotInCartError()

    if quantity <= 0:
        return remove_item(items, offer_id)

    if quantity > max_quantity:
        raise QuantityLimitError(f"Quantity cannot exceed {max_quantity}")

    return [
        item.model_copy(update={"quantity": quantity}) if item.offer_id == offer_id else item
        for item in items
    ]


def remove_item(items: Sequence[CartItem], offer_id: int) -> List[CartItem]:
    if find_item(items, offer_id) is None:
        raise ItemNotInCartError()
    return [item for item in items if item.offer_id != offer_id]


def total_price(items: Sequence[CartItem]) -> Decimal:
    """Sum of discounted_price x quantity"""
    return sum(
        (Decimal(item.offer.discounted_price) * item.quantity for item in items),
        Decimal("0"),
    )


def total_items_count(items: Sequence[CartItem]) -> int:
    return sum(item.quantity for item in items)


def current_business_id(items: Sequence[CartItem]) -> Optional[int]:
    return items[0].business_id if items else None


# ==================== store ====================

class CartStore:
    """One owner's cart bound to a persistence adapter"""

    def __init__(
        self,
        owner_id: int,
        persistence: CartPersistence,
        on_change: Optional[Callable[[int], None]] = None,
        max_quantity: int = DEFAULT_MAX_QUANTITY,
    ):
        self.owner_id = owner_id
        self.persistence = persistence
        self.on_change = on_change
        self.max_quantity = max_quantity

    @property
    def items(self) -> List[CartItem]:
        return self.persistence.load(self.owner_id)

    def _commit(self, items: List[CartItem]) -> List[CartItem]:
        if items:
            self.persistence.save(self.owner_id, items)
        else:
            self.persistence.clear(self.owner_id)
        if self.on_change:
            self.on_change(self.owner_id)
        return items

    def add_to_cart(self, offer: OfferSnapshot, quantity: int) -> List[CartItem]:
        items = add_item(self.items, offer, quantity, self.max_quantity)
        logger.debug(f"Cart add: owner={self.owner_id}, offer_id={offer.id}, quantity={quantity}")
        return self._commit(items)

    def replace_with(self, offer: OfferSnapshot, quantity: int) -> List[CartItem]:
        """Clear the cart and add one offer, as a single write"""
        items = add_item([], offer, quantity, self.max_quantity)
        return self._commit(items)

    def update_cart_item(self, offer_id: int, quantity: int) -> List[CartItem]:
        items = update_item(self.items, offer_id, quantity, self.max_quantity)
        logger.debug(f"Cart update: owner={self.owner_id}, offer_id={offer_id}, quantity={quantity}")
        return self._commit(items)

    def remove_from_cart(self, offer_id: int) -> List[CartItem]:
        items = remove_item(self.items, offer_id)
        logger.debug(f"Cart remove: owner={self.owner_id}, offer_id={offer_id}")
        return self._commit(items)

    def clear_cart(self) -> List[CartItem]:
        return self._commit([])

    def get_total_price(self) -> Decimal:
        return total_price(self.items)

    def get_total_items_count(self) -> int:
        return total_items_count(self.items)

    def get_current_business_id(self) -> Optional[int]:
        return current_business_id(self.items)
