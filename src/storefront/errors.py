"""Typed failures raised by the cart, checkout and order operations.

Every error carries a stable machine-readable ``code`` (the upper-snake form
of its class name) and the HTTP status of its category. The API layer maps
them to responses; nothing below the API catches and retries them.
"""

import re

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class StorefrontError(Exception):
    """Base class for all domain failures."""

    status_code = 500
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return _CAMEL_BOUNDARY.sub("_", type(self).__name__).upper()

    def to_dict(self) -> dict:
        payload = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------
class InvalidRequest(StorefrontError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationRequired(StorefrontError):
    status_code = 401
    default_message = "Authentication is required"


class AccessDenied(StorefrontError):
    status_code = 403
    default_message = "Access denied"


class NotFound(StorefrontError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(StorefrontError):
    status_code = 409
    default_message = "Request conflicts with the current state"


class BusinessRuleViolation(StorefrontError):
    status_code = 422
    default_message = "Request violates a business rule"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
class OwnerRequired(InvalidRequest):
    default_message = "Either a customer id or a session id is required"


class AmbiguousOwner(InvalidRequest):
    default_message = "A cart belongs to a customer or a session, not both"


class InvalidQuantity(InvalidRequest):
    default_message = "Quantity must be between 1 and 100"


class InvalidCouponCode(InvalidRequest):
    default_message = "Invalid coupon code"


class InvalidStatus(InvalidRequest):
    default_message = "Invalid status"


class AddressNotFound(InvalidRequest):
    default_message = "Address not found in the customer's address book"


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------
class CartNotFound(NotFound):
    default_message = "Cart not found"


class ItemNotFound(NotFound):
    default_message = "Item not found in cart"


class OrderNotFound(NotFound):
    default_message = "Order not found"


class ProductNotFound(NotFound):
    default_message = "Product not found"


class CustomerNotFound(NotFound):
    default_message = "Customer not found"


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------
class DuplicateDiscount(Conflict):
    default_message = "Coupon already applied"


class RefundAlreadyRequested(Conflict):
    default_message = "Refund has already been requested for this order"


# ---------------------------------------------------------------------------
# Business rules
# ---------------------------------------------------------------------------
class InsufficientStock(BusinessRuleViolation):
    default_message = "Insufficient stock available"


class ProductUnavailable(BusinessRuleViolation):
    default_message = "Product is not available"


class ProductGone(BusinessRuleViolation):
    default_message = "Product is no longer available"


class EmptyCart(BusinessRuleViolation):
    default_message = "Cart is empty"


class EmptyCartDiscount(BusinessRuleViolation):
    default_message = "Cannot apply coupon to empty cart"


class QuantityLimitExceeded(BusinessRuleViolation):
    default_message = "Maximum quantity per item is 100"


class NotCancellable(BusinessRuleViolation):
    default_message = "Order cannot be cancelled in its current status"


class NotRefundable(BusinessRuleViolation):
    default_message = "Order is not eligible for refund"
