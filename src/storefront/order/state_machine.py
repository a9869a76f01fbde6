"""OrderStateMachine — order and payment status changes with their side effects.

Cancellation is the only transition that reaches outside the order: stock
taken at checkout goes back to the inventory ledger before the order is
marked cancelled. A line that cannot be restocked does not block the
cancellation; the order is flagged for review instead.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.catalogue import get_ledger
from storefront.catalogue.port import InventoryLedger
from storefront.errors import OrderNotFound
from storefront.order.order import CancelledBy, Order, OrderItem

logger = structlog.get_logger(__name__)


class OrderStateMachine:
    def __init__(self, ledger: InventoryLedger | None = None):
        self._ledger = ledger

    @property
    def ledger(self) -> InventoryLedger:
        return self._ledger or get_ledger()

    @property
    def repository(self):
        return current_domain.repository_for(Order)

    def load(self, order_id) -> Order:
        try:
            return self.repository.get(order_id)
        except ObjectNotFoundError:
            raise OrderNotFound(order_id=str(order_id)) from None

    def cancel(self, order: Order, reason=None, cancelled_by=CancelledBy.CUSTOMER.value) -> Order:
        order.ensure_cancellable()

        failed = [item for item in order.tracked_items if not self._restock(order, item)]
        if failed:
            order.flag_for_review(
                "Stock could not be restored for products: " + ", ".join(str(item.product_id) for item in failed)
            )

        order.cancel(reason=reason, cancelled_by=cancelled_by)
        self.repository.add(order)
        logger.info(
            "Order cancelled",
            order_id=str(order.id),
            order_number=order.order_number,
            cancelled_by=cancelled_by,
            restocked_lines=len(order.tracked_items) - len(failed),
        )
        return order

    def request_refund(self, order: Order, reason=None) -> Order:
        order.request_refund(reason)
        self.repository.add(order)
        logger.info("Refund requested", order_id=str(order.id), order_number=order.order_number)
        return order

    def update_status(self, order: Order, new_status: str, reason=None) -> Order:
        previous_status = order.status
        order.update_status(new_status, reason)
        self.repository.add(order)
        logger.info(
            "Order status updated",
            order_id=str(order.id),
            previous_status=previous_status,
            new_status=order.status,
        )
        return order

    def update_payment_status(self, order: Order, new_status: str, transaction_id=None) -> Order:
        previous_status = order.payment_status
        order.update_payment_status(new_status, transaction_id)
        self.repository.add(order)
        logger.info(
            "Payment status updated",
            order_id=str(order.id),
            previous_status=previous_status,
            new_status=order.payment_status,
            order_status=order.status,
        )
        return order

    def add_tracking(self, order: Order, item_id, carrier, tracking_number, estimated_delivery=None) -> Order:
        order.add_tracking(item_id, carrier, tracking_number, estimated_delivery)
        self.repository.add(order)
        logger.info(
            "Tracking added",
            order_id=str(order.id),
            item_id=str(item_id),
            carrier=carrier,
        )
        return order

    def _restock(self, order: Order, item: OrderItem) -> bool:
        try:
            self.ledger.increment_stock(str(item.product_id), item.quantity)
            return True
        except Exception:
            logger.exception(
                "Failed to restore stock for cancelled order",
                order_id=str(order.id),
                product_id=str(item.product_id),
                quantity=item.quantity,
            )
            return False
