"""Domain events for the Order aggregate.

Orders are stored as state, not rebuilt from events; these events are the
audit trail of what happened to an order and when.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A cart was checked out into a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    customer_id = Identifier(required=True)
    item_count = Integer(required=True)
    total = Float(required=True)
    currency = String(max_length=3, default="USD")
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_by = String(max_length=50)
    cancelled_at = DateTime(required=True)


@storefront.event(part_of="Order")
class RefundRequested:
    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(max_length=500)
    requested_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=20)
    new_status = String(required=True, max_length=20)
    reason = String(max_length=500)
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class PaymentStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=20)
    new_status = String(required=True, max_length=20)
    transaction_id = String(max_length=255)
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class TrackingAdded:
    """A line was handed to a carrier."""

    __version__ = 1

    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    carrier = String(required=True, max_length=100)
    tracking_number = String(required=True, max_length=255)


@storefront.event(part_of="Order")
class OrderFlaggedForReview:
    """Stock could not be restored for an order, so it needs a human to reconcile it."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    flagged_at = DateTime(required=True)
