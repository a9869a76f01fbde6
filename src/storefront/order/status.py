"""Back-office order updates — status, payment status and shipment tracking."""

from protean import handle
from protean.fields import DateTime, Identifier, String

from storefront.domain import storefront
from storefront.order.order import Order
from storefront.order.state_machine import OrderStateMachine


@storefront.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    reason = String(max_length=500)


@storefront.command(part_of="Order")
class UpdatePaymentStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    transaction_id = String(max_length=255)


@storefront.command(part_of="Order")
class AddTrackingInfo:
    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    carrier = String(required=True, max_length=100)
    tracking_number = String(required=True, max_length=255)
    estimated_delivery = DateTime()


@storefront.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        machine = OrderStateMachine()
        order = machine.load(command.order_id)
        machine.update_status(order, command.status, reason=command.reason)
        return str(order.id)

    @handle(UpdatePaymentStatus)
    def update_payment_status(self, command):
        machine = OrderStateMachine()
        order = machine.load(command.order_id)
        machine.update_payment_status(order, command.status, transaction_id=command.transaction_id)
        return str(order.id)

    @handle(AddTrackingInfo)
    def add_tracking_info(self, command):
        machine = OrderStateMachine()
        order = machine.load(command.order_id)
        machine.add_tracking(
            order,
            command.item_id,
            command.carrier,
            command.tracking_number,
            estimated_delivery=command.estimated_delivery,
        )
        return str(order.id)
