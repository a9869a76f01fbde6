"""Order aggregate — the immutable record of a checked-out cart.

Item snapshots, prices and addresses are frozen when the order is placed.
What keeps moving afterwards is the order status, the payment status and
per-line fulfilment (status and tracking).

Order status:
    pending → confirmed → processing → shipped → delivered
    side branches: cancelled, returned, refunded

Payment status:
    pending → paid | failed
    paid → refunded | partially_refunded
    cancelled
"""

import json
import secrets
import string
from datetime import datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from storefront.domain import storefront
from storefront.errors import (
    InvalidStatus,
    ItemNotFound,
    NotCancellable,
    NotRefundable,
    RefundAlreadyRequested,
)
from storefront.order.events import (
    OrderCancelled,
    OrderFlaggedForReview,
    OrderPlaced,
    OrderStatusChanged,
    PaymentStatusChanged,
    RefundRequested,
    TrackingAdded,
)
from storefront.pricing.engine import AppliedDiscount, Totals
from storefront.shared.clock import utcnow
from storefront.shared.snapshots import AddressSnapshot, BuyerSnapshot, ProductSnapshot

_TOTALS_TOLERANCE = 0.005
_ORDER_NUMBER_ALPHABET = string.digits + string.ascii_uppercase


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"
    REFUNDED = "refunded"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    BANK_TRANSFER = "bank_transfer"
    CASH_ON_DELIVERY = "cash_on_delivery"


class ItemStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class CancelledBy(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    SYSTEM = "system"


CANCELLABLE_STATUSES = {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PROCESSING}
REFUNDABLE_STATUSES = {OrderStatus.SHIPPED, OrderStatus.DELIVERED}


def generate_order_number(now: datetime | None = None) -> str:
    """``ORD-<epoch milliseconds>-<5 random uppercase base-36 characters>``."""
    now = now or utcnow()
    suffix = "".join(secrets.choice(_ORDER_NUMBER_ALPHABET) for _ in range(5))
    return f"ORD-{int(now.timestamp() * 1000)}-{suffix}"


def parse_status(value: str, enum_cls: type[Enum]) -> Enum:
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidStatus(f"Invalid status: {value}", status=value) from None


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class TrackingInfo:
    carrier = String(required=True, max_length=100)
    tracking_number = String(required=True, max_length=255)
    tracking_url = String(max_length=1000)
    estimated_delivery = DateTime()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A frozen order line.

    ``inventory_tracked`` records whether stock was taken for the line at
    checkout, which is exactly what a cancellation has to give back.
    """

    product_id = Identifier(required=True)
    product = ValueObject(ProductSnapshot)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    total_price = Float(required=True, min_value=0.0)
    selected_variants = Text()  # JSON array of {name, value}
    inventory_tracked = Boolean(default=True)
    status = String(choices=ItemStatus, default=ItemStatus.PENDING.value)
    tracking = ValueObject(TrackingInfo)

    @property
    def variants(self) -> list[dict]:
        return json.loads(self.selected_variants) if self.selected_variants else []


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=50, unique=True)
    customer_id = Identifier(required=True)
    buyer = ValueObject(BuyerSnapshot)
    items = HasMany(OrderItem)
    subtotal = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    shipping = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default="USD")
    shipping_address = ValueObject(AddressSnapshot)
    billing_address = ValueObject(AddressSnapshot)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CREDIT_CARD.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    transaction_id = String(max_length=255)
    paid_at = DateTime()
    failed_at = DateTime()
    refunded_at = DateTime()
    applied_discounts = Text()  # JSON array of {code, magnitude, type}
    special_instructions = String(max_length=500)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    delivered_at = DateTime()
    cancelled_at = DateTime()
    cancel_reason = String(max_length=500)
    cancelled_by = String(choices=CancelledBy)
    refund_requested = Boolean(default=False)
    refund_reason = String(max_length=500)
    needs_review = Boolean(default=False)
    review_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_matches_components(self):
        expected = max(0.0, (self.subtotal or 0) + (self.tax or 0) + (self.shipping or 0) - (self.discount or 0))
        if abs((self.total or 0) - expected) > _TOTALS_TOLERANCE:
            raise ValidationError({"total": ["Total must equal subtotal + tax + shipping - discount"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number: str,
        customer_id,
        buyer: BuyerSnapshot,
        items: list[OrderItem],
        totals: Totals,
        shipping_address: AddressSnapshot,
        billing_address: AddressSnapshot,
        payment_method: str = PaymentMethod.CREDIT_CARD.value,
        discounts: list[AppliedDiscount] | None = None,
        special_instructions: str | None = None,
        currency: str = "USD",
    ):
        now = utcnow()
        order = cls(
            order_number=order_number,
            customer_id=customer_id,
            buyer=buyer,
            items=items,
            subtotal=totals.subtotal,
            tax=totals.tax,
            shipping=totals.shipping,
            discount=totals.discount,
            total=totals.total,
            currency=currency,
            shipping_address=shipping_address,
            billing_address=billing_address,
            payment_method=PaymentMethod(payment_method).value,
            payment_status=PaymentStatus.PENDING.value,
            applied_discounts=json.dumps([d.to_dict() for d in discounts or []]),
            special_instructions=special_instructions,
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                item_count=sum(item.quantity for item in items),
                total=totals.total,
                currency=currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    @property
    def discounts(self) -> list[AppliedDiscount]:
        raw = json.loads(self.applied_discounts) if self.applied_discounts else []
        return [AppliedDiscount.from_dict(d) for d in raw]

    @property
    def totals(self) -> Totals:
        return Totals(
            subtotal=self.subtotal or 0.0,
            tax=self.tax or 0.0,
            shipping=self.shipping or 0.0,
            discount=self.discount or 0.0,
            total=self.total or 0.0,
        )

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def tracked_items(self) -> list[OrderItem]:
        return [item for item in self.items if item.inventory_tracked]

    @property
    def is_cancellable(self) -> bool:
        return OrderStatus(self.status) in CANCELLABLE_STATUSES

    def get_item(self, item_id) -> OrderItem:
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ItemNotFound("Item not found in order", item_id=str(item_id))
        return item

    # -------------------------------------------------------------------
    # Cancellation & refunds
    # -------------------------------------------------------------------
    def ensure_cancellable(self) -> None:
        if not self.is_cancellable:
            raise NotCancellable(f"Order cannot be cancelled in {self.status} status", status=self.status)

    def cancel(self, reason=None, cancelled_by=CancelledBy.CUSTOMER.value) -> None:
        self.ensure_cancellable()
        now = utcnow()
        with atomic_change(self):
            self.status = OrderStatus.CANCELLED.value
            self.cancelled_at = now
            self.cancel_reason = reason
            self.cancelled_by = CancelledBy(cancelled_by).value
            for item in self.items:
                item.status = ItemStatus.CANCELLED.value
            self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                reason=reason,
                cancelled_by=self.cancelled_by,
                cancelled_at=now,
            )
        )

    def request_refund(self, reason=None) -> None:
        if OrderStatus(self.status) not in REFUNDABLE_STATUSES or self.payment_status != PaymentStatus.PAID.value:
            raise NotRefundable(status=self.status, payment_status=self.payment_status)
        if self.refund_requested:
            raise RefundAlreadyRequested()

        now = utcnow()
        with atomic_change(self):
            self.refund_requested = True
            self.refund_reason = reason
            self.updated_at = now

        self.raise_(RefundRequested(order_id=str(self.id), reason=reason, requested_at=now))

    def flag_for_review(self, reason: str) -> None:
        now = utcnow()
        with atomic_change(self):
            self.needs_review = True
            self.review_reason = reason
            self.updated_at = now

        self.raise_(OrderFlaggedForReview(order_id=str(self.id), reason=reason, flagged_at=now))

    # -------------------------------------------------------------------
    # Status writes
    # -------------------------------------------------------------------
    def update_status(self, new_status: str, reason=None) -> None:
        """Write a new order status, stamping delivery or cancellation times."""
        target = parse_status(new_status, OrderStatus)
        previous_status = self.status
        now = utcnow()

        with atomic_change(self):
            self.status = target.value
            if target == OrderStatus.DELIVERED:
                self.delivered_at = now
            elif target == OrderStatus.CANCELLED:
                self.cancelled_at = now
                self.cancel_reason = reason
            self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous_status,
                new_status=target.value,
                reason=reason,
                changed_at=now,
            )
        )

    def update_payment_status(self, new_status: str, transaction_id=None) -> None:
        """Write a new payment status. Paying a pending order confirms it."""
        target = parse_status(new_status, PaymentStatus)
        previous_status = self.payment_status
        now = utcnow()

        with atomic_change(self):
            self.payment_status = target.value
            if target == PaymentStatus.PAID:
                self.paid_at = now
                if transaction_id:
                    self.transaction_id = transaction_id
                if self.status == OrderStatus.PENDING.value:
                    self.status = OrderStatus.CONFIRMED.value
            elif target == PaymentStatus.FAILED:
                self.failed_at = now
            elif target in (PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED):
                self.refunded_at = now
            self.updated_at = now

        self.raise_(
            PaymentStatusChanged(
                order_id=str(self.id),
                previous_status=previous_status,
                new_status=target.value,
                transaction_id=transaction_id,
                changed_at=now,
            )
        )

    def add_tracking(self, item_id, carrier: str, tracking_number: str, estimated_delivery=None) -> OrderItem:
        """Hand one line to a carrier and mark it shipped."""
        item = self.get_item(item_id)
        now = utcnow()

        with atomic_change(self):
            item.tracking = TrackingInfo(
                carrier=carrier,
                tracking_number=tracking_number,
                tracking_url=f"https://tracking.{carrier.lower()}.com/{tracking_number}",
                estimated_delivery=estimated_delivery,
            )
            item.status = ItemStatus.SHIPPED.value
            self.updated_at = now

        self.raise_(
            TrackingAdded(
                order_id=str(self.id),
                item_id=str(item.id),
                carrier=carrier,
                tracking_number=tracking_number,
            )
        )
        return item
