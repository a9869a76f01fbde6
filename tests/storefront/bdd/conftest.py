"""Shared BDD fixtures and step definitions for checkout and orders."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then, when
from storefront.cart.coupons import ApplyCoupon
from storefront.cart.items import AddCartItem
from storefront.checkout.orchestrator import CheckoutOrchestrator
from storefront.errors import StorefrontError
from storefront.order.order import Order


@pytest.fixture()
def customer_id():
    return "cust-001"


@pytest.fixture()
def outcome():
    """Container for the placed order or the captured failure."""
    return {"order": None, "error": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a customer "{customer_id}" with address "{address_id}"'))
def a_customer(add_customer, customer_id, address_id):
    add_customer(customer_id, address_ids=(address_id,))


@given(parsers.cfparse('a product "{product_id}" priced {price:f} with {quantity:d} in stock'))
def a_product(add_product, product_id, price, quantity):
    add_product(product_id, price=price, quantity=quantity)


@given(parsers.cfparse('the customer\'s cart holds {quantity:d} of "{product_id}"'))
def cart_holds(customer_id, quantity, product_id):
    current_domain.process(
        AddCartItem(customer_id=customer_id, product_id=product_id, quantity=quantity),
        asynchronous=False,
    )


@given(parsers.cfparse('the coupon "{code}" is applied'))
def coupon_applied(customer_id, code):
    current_domain.process(ApplyCoupon(customer_id=customer_id, code=code), asynchronous=False)


@given(parsers.cfparse('"{product_id}" is restocked to {quantity:d}'))
def restocked(catalogue, product_id, quantity):
    catalogue.update_product(product_id, quantity=quantity)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the customer checks out to "{address_id}"'))
@when(parsers.cfparse('the customer checks out to "{address_id}"'))
def checks_out(customer_id, address_id, outcome):
    try:
        outcome["order"] = CheckoutOrchestrator().checkout(customer_id, address_id)
    except StorefrontError as exc:
        outcome["error"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('"{product_id}" has {quantity:d} in stock'))
def has_stock(catalogue, product_id, quantity):
    assert catalogue.stock_of(product_id) == quantity


@then(parsers.cfparse('the order status is "{status}"'))
def order_status(outcome, status):
    order = current_domain.repository_for(Order).get(outcome["order"].id)
    assert order.status == status
