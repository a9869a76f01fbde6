"""Tests for the Order aggregate."""

import re

import pytest
from protean.exceptions import ValidationError
from storefront.errors import InvalidStatus, ItemNotFound, NotCancellable, NotRefundable, RefundAlreadyRequested
from storefront.order.events import (
    OrderCancelled,
    OrderFlaggedForReview,
    OrderPlaced,
    PaymentStatusChanged,
    TrackingAdded,
)
from storefront.order.order import (
    ItemStatus,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    generate_order_number,
)
from storefront.pricing.engine import AppliedDiscount, DiscountType, Totals, compute_totals
from storefront.shared.clock import utcnow
from storefront.shared.snapshots import AddressSnapshot, BuyerSnapshot, ProductSnapshot


def _address():
    return AddressSnapshot(
        first_name="Jordan",
        last_name="Lee",
        address_line1="1 Main St",
        city="Springfield",
        state="IL",
        postal_code="62701",
        country="US",
    )


def _make_order(status=None, payment_status=None, tracked=True):
    items = [
        OrderItem(
            product_id="prod-001",
            product=ProductSnapshot(name="Widget", slug="widget", sku="WID-1"),
            quantity=2,
            unit_price=25.0,
            total_price=50.0,
            inventory_tracked=tracked,
        ),
        OrderItem(
            product_id="prod-002",
            product=ProductSnapshot(name="Gizmo", slug="gizmo", sku="GIZ-1"),
            quantity=1,
            unit_price=10.0,
            total_price=10.0,
            inventory_tracked=False,
        ),
    ]
    discounts = [AppliedDiscount("SAVE10", 10, DiscountType.PERCENTAGE)]
    order = Order.place(
        order_number=generate_order_number(),
        customer_id="cust-001",
        buyer=BuyerSnapshot(first_name="Jordan", last_name="Lee", email="jordan@example.com"),
        items=items,
        totals=compute_totals(items, discounts),
        shipping_address=_address(),
        billing_address=_address(),
        payment_method="paypal",
        discounts=discounts,
    )
    if status:
        order.status = status
    if payment_status:
        order.payment_status = payment_status
    order._events.clear()
    return order


class TestOrderNumber:
    def test_format(self):
        assert re.fullmatch(r"ORD-\d{13}-[0-9A-Z]{5}", generate_order_number())

    def test_uses_epoch_milliseconds(self):
        now = utcnow()
        assert generate_order_number(now).split("-")[1] == str(int(now.timestamp() * 1000))

    def test_numbers_differ(self):
        numbers = {generate_order_number() for _ in range(50)}
        assert len(numbers) > 1


class TestPlaceOrder:
    def test_initial_state(self):
        order = _make_order()
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.payment_method == "paypal"
        assert order.item_count == 3
        assert [d.code for d in order.discounts] == ["SAVE10"]
        assert order.refund_requested is False
        assert order.needs_review is False

    def test_totals_come_from_pricing(self):
        order = _make_order()
        # 60 subtotal, 6 tax, 10 shipping, 6 discount
        assert order.totals == Totals(subtotal=60.0, tax=6.0, shipping=10.0, discount=6.0, total=70.0)

    def test_raises_order_placed(self):
        items = [OrderItem(product_id="p", quantity=1, unit_price=5.0, total_price=5.0)]
        order = Order.place(
            order_number="ORD-1-ABCDE",
            customer_id="cust-001",
            buyer=BuyerSnapshot(first_name="A", last_name="B", email="a@example.com"),
            items=items,
            totals=compute_totals(items),
            shipping_address=_address(),
            billing_address=_address(),
        )
        event = next(e for e in order._events if isinstance(e, OrderPlaced))
        assert event.order_number == "ORD-1-ABCDE"
        assert event.total == order.total

    def test_inconsistent_totals_rejected(self):
        items = [OrderItem(product_id="p", quantity=1, unit_price=5.0, total_price=5.0)]
        with pytest.raises(ValidationError):
            Order.place(
                order_number="ORD-1-ABCDE",
                customer_id="cust-001",
                buyer=BuyerSnapshot(first_name="A", last_name="B", email="a@example.com"),
                items=items,
                totals=Totals(subtotal=5.0, tax=0.5, shipping=10.0, discount=0.0, total=99.0),
                shipping_address=_address(),
                billing_address=_address(),
            )

    def test_unknown_payment_method(self):
        with pytest.raises(ValueError):
            Order.place(
                order_number="ORD-1-ABCDE",
                customer_id="cust-001",
                buyer=BuyerSnapshot(first_name="A", last_name="B", email="a@example.com"),
                items=[],
                totals=Totals.zero(),
                shipping_address=_address(),
                billing_address=_address(),
                payment_method="barter",
            )


class TestCancel:
    @pytest.mark.parametrize("status", ["pending", "confirmed", "processing"])
    def test_cancellable_statuses(self, status):
        order = _make_order(status=status)
        order.cancel(reason="Changed my mind")

        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancel_reason == "Changed my mind"
        assert order.cancelled_by == "customer"
        assert order.cancelled_at is not None
        assert all(item.status == ItemStatus.CANCELLED.value for item in order.items)
        assert isinstance(order._events[-1], OrderCancelled)

    @pytest.mark.parametrize("status", ["shipped", "delivered", "cancelled", "refunded"])
    def test_not_cancellable(self, status):
        order = _make_order(status=status)
        with pytest.raises(NotCancellable):
            order.cancel()
        assert order.status == status

    def test_tracked_items(self):
        order = _make_order()
        assert [str(item.product_id) for item in order.tracked_items] == ["prod-001"]

    def test_flag_for_review(self):
        order = _make_order()
        order.flag_for_review("Stock could not be restored")
        assert order.needs_review is True
        assert isinstance(order._events[-1], OrderFlaggedForReview)


class TestRefund:
    def test_refund_on_paid_delivered_order(self):
        order = _make_order(status="delivered", payment_status="paid")
        order.request_refund("Broken on arrival")
        assert order.refund_requested is True
        assert order.refund_reason == "Broken on arrival"
        assert order.status == "delivered"

    def test_refund_requires_paid(self):
        order = _make_order(status="delivered", payment_status="pending")
        with pytest.raises(NotRefundable):
            order.request_refund("Broken")

    def test_refund_requires_shipped_or_delivered(self):
        order = _make_order(status="confirmed", payment_status="paid")
        with pytest.raises(NotRefundable):
            order.request_refund("Broken")

    def test_refund_only_once(self):
        order = _make_order(status="shipped", payment_status="paid")
        order.request_refund("Broken")
        with pytest.raises(RefundAlreadyRequested):
            order.request_refund("Still broken")


class TestStatusWrites:
    def test_delivered_stamps_time(self):
        order = _make_order(status="shipped")
        order.update_status("delivered")
        assert order.status == "delivered"
        assert order.delivered_at is not None

    def test_cancelled_stamps_reason(self):
        order = _make_order()
        order.update_status("cancelled", reason="Fraud")
        assert order.cancelled_at is not None
        assert order.cancel_reason == "Fraud"

    def test_plain_write(self):
        order = _make_order()
        order.update_status("processing")
        assert order.status == "processing"
        assert order.delivered_at is None

    def test_unknown_status(self):
        order = _make_order()
        with pytest.raises(InvalidStatus):
            order.update_status("teleported")
        assert order.status == "pending"


class TestPaymentStatus:
    def test_paid_confirms_pending_order(self):
        order = _make_order()
        order.update_payment_status("paid", transaction_id="txn-001")

        assert order.payment_status == "paid"
        assert order.status == "confirmed"
        assert order.transaction_id == "txn-001"
        assert order.paid_at is not None
        event = order._events[-1]
        assert isinstance(event, PaymentStatusChanged)
        assert event.previous_status == "pending"

    def test_paid_leaves_later_status_alone(self):
        order = _make_order(status="processing")
        order.update_payment_status("paid")
        assert order.status == "processing"

    def test_failed_stamps_time(self):
        order = _make_order()
        order.update_payment_status("failed")
        assert order.failed_at is not None
        assert order.status == "pending"

    @pytest.mark.parametrize("status", ["refunded", "partially_refunded"])
    def test_refunds_stamp_time(self, status):
        order = _make_order(payment_status="paid")
        order.update_payment_status(status)
        assert order.refunded_at is not None

    def test_unknown_payment_status(self):
        with pytest.raises(InvalidStatus):
            _make_order().update_payment_status("maybe")


class TestTracking:
    def test_add_tracking(self):
        order = _make_order(status="processing")
        item = order.items[0]
        order.add_tracking(item.id, "UPS", "1Z999")

        assert item.status == ItemStatus.SHIPPED.value
        assert item.tracking.carrier == "UPS"
        assert item.tracking.tracking_url == "https://tracking.ups.com/1Z999"
        assert isinstance(order._events[-1], TrackingAdded)

    def test_unknown_item(self):
        with pytest.raises(ItemNotFound):
            _make_order().add_tracking("missing", "UPS", "1Z999")
