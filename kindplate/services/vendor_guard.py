"""Single-vendor-cart guard.

The check itself is pure; replacing the cart after the customer confirms is
a separate step so the rule can be tested without any request handling.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Optional, Sequence

from kindplate.schemas.cart import CartItem, OfferSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VendorConflict:
    """The cart belongs to one business and the new offer to another"""

    current_business_id: int
    current_business_name: str
    new_business_id: int
    new_business_name: str

    def as_dict(self) -> dict:
        return asdict(self)


def find_vendor_conflict(items: Sequence[CartItem], offer: OfferSnapshot) -> Optional[VendorConflict]:
    """Return the conflict that adding ``offer`` would cause, or None.

    An empty cart never conflicts.
    """
    if not items:
        return None

    current = items[0]
    if all(item.business_id == offer.business.id for item in items):
        return None

    return VendorConflict(
        current_business_id=current.business_id,
        current_business_name=current.offer.business.name,
        new_business_id=offer.business.id,
        new_business_name=offer.business.name,
    )


def resolve_vendor_conflict(store, offer: OfferSnapshot, quantity: int, confirm: bool) -> bool:
    """Apply the customer's answer to the replace-cart prompt.

    On confirm the cart is cleared and the offer added in a single write.
    On cancel nothing changes. Returns whether the cart was mutated.
    """
    if not confirm:
        logger.info(f"Cart replacement declined: owner={store.owner_id}, offer_id={offer.id}")
        return False

    store.replace_with(offer, quantity)
    logger.info(
        f"Cart replaced: owner={store.owner_id}, business_id={offer.business.id}, "
        f"offer_id={offer.id}, quantity={quantity}"
    )
    return True
