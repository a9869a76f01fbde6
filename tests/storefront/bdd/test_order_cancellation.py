"""BDD tests for order cancellation."""

from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when
from storefront.errors import StorefrontError
from storefront.order.order import Order
from storefront.order.state_machine import OrderStateMachine

scenarios("features/order_cancellation.feature")


@given(parsers.cfparse('the order status is set to "{status}"'))
def status_set(outcome, status):
    OrderStateMachine().update_status(outcome["order"], status)


@given(parsers.cfparse('"{product_id}" is withdrawn from the catalogue'))
def withdrawn(catalogue, product_id):
    catalogue.remove_product(product_id)


@when(parsers.cfparse('the customer cancels the order because "{reason}"'))
def cancels(outcome, reason):
    machine = OrderStateMachine()
    try:
        machine.cancel(machine.load(outcome["order"].id), reason=reason)
    except StorefrontError as exc:
        outcome["error"] = exc


@then(parsers.cfparse('cancellation fails with "{code}"'))
def cancellation_fails(outcome, code):
    assert outcome["error"].code == code


@then("the order needs review")
def needs_review(outcome):
    order = current_domain.repository_for(Order).get(outcome["order"].id)
    assert order.needs_review is True
