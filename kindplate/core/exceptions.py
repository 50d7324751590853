"""Domain errors with machine-readable codes.

Every error is an ``HTTPException`` so routers can let it pass through
unchanged; the global handler in ``kindplate.main`` renders the
``error_code`` next to the human readable message.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException


class KindPlateError(HTTPException):
    """Base error carrying an ``error_code``"""

    status_code = 400
    error_code = "UNKNOWN_ERROR"
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)
        self.details = details or {}


# ---------- cart ----------

class OfferNotFoundError(KindPlateError):
    status_code = 404
    error_code = "OFFER_NOT_FOUND"
    default_message = "Offer not found or inactive"


class OfferInactiveError(KindPlateError):
    error_code = "OFFER_INACTIVE"
    default_message = "Offer is not available"


class InsufficientQuantityError(KindPlateError):
    error_code = "INSUFFICIENT_QUANTITY"
    default_message = "Not enough items available"


class QuantityLimitError(KindPlateError):
    error_code = "QUANTITY_LIMIT"
    default_message = "Quantity exceeds the per-item limit"


class ItemNotInCartError(KindPlateError):
    status_code = 404
    error_code = "ITEM_NOT_IN_CART"
    default_message = "Item not found in cart"


class VendorConflictError(KindPlateError):
    """Cart holds items of another business; the caller must confirm replacement"""

    status_code = 409
    error_code = "VENDOR_CONFLICT"
    default_message = "Cart already contains offers from another business"

    def __init__(self, conflict):
        super().__init__(
            f"Cart contains offers from {conflict.current_business_name}; "
            f"replace them with {conflict.new_business_name}?",
            details=conflict.as_dict(),
        )
        self.conflict = conflict


class CartEmptyError(KindPlateError):
    error_code = "CART_EMPTY"
    default_message = "Cart is empty"


# ---------- orders ----------

class InvalidOrderError(KindPlateError):
    error_code = "INVALID_REQUEST"
    default_message = "Invalid order"


class MultipleVendorsError(KindPlateError):
    error_code = "MULTIPLE_VENDORS"
    default_message = "All items must come from one business"


class OrderNotFoundError(KindPlateError):
    status_code = 404
    error_code = "ORDER_NOT_FOUND"
    default_message = "Order not found"


class OrderNotEditableError(KindPlateError):
    error_code = "ORDER_NOT_EDITABLE"
    default_message = "Order can no longer be changed"


class OrderNotConfirmedError(KindPlateError):
    error_code = "ORDER_NOT_CONFIRMED"
    default_message = "Order must be confirmed before payment"


class NoAuthorityError(KindPlateError):
    status_code = 403
    error_code = "NO_AUTHORITY"
    default_message = "Not allowed"


# ---------- pickup ----------

class CodeNotFoundError(KindPlateError):
    status_code = 404
    error_code = "CODE_NOT_FOUND"
    default_message = "Pickup code not found"


class QrExpiredError(KindPlateError):
    error_code = "QR_EXPIRED"
    default_message = "QR code expired, ask the customer to refresh it"


class QrInvalidError(KindPlateError):
    error_code = "QR_INVALID"
    default_message = "QR code signature is invalid"


class AlreadyPickedUpError(KindPlateError):
    status_code = 409
    error_code = "ALREADY_PICKED_UP"
    default_message = "Order was already picked up"


class OrderNotReadyError(KindPlateError):
    error_code = "ORDER_NOT_READY"
    default_message = "Order cannot be handed out in its current state"


# ---------- payments ----------

class PaymentNotFoundError(KindPlateError):
    status_code = 404
    error_code = "PAYMENT_NOT_FOUND"
    default_message = "Payment not found"


class InvalidAmountError(KindPlateError):
    error_code = "INVALID_AMOUNT"
    default_message = "Payment amount does not match the order"


class PaymentInProgressError(KindPlateError):
    status_code = 429
    error_code = "PAYMENT_IN_PROGRESS"
    default_message = "Payment is being created, retry shortly"
