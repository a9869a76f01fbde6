"""Order cancellation and refund requests — commands and handler."""

from protean import handle
from protean.fields import Identifier, String

from storefront.domain import storefront
from storefront.order.order import CancelledBy, Order
from storefront.order.state_machine import OrderStateMachine


@storefront.command(part_of="Order")
class CancelOrder:
    """Cancel an order that has not shipped yet, putting its stock back."""

    order_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_by = String(choices=CancelledBy, default=CancelledBy.CUSTOMER.value)


@storefront.command(part_of="Order")
class RequestRefund:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@storefront.command_handler(part_of=Order)
class CancellationHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        machine = OrderStateMachine()
        order = machine.load(command.order_id)
        machine.cancel(order, reason=command.reason, cancelled_by=command.cancelled_by)
        return str(order.id)

    @handle(RequestRefund)
    def request_refund(self, command):
        machine = OrderStateMachine()
        order = machine.load(command.order_id)
        machine.request_refund(order, reason=command.reason)
        return str(order.id)
