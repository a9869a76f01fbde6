"""Storefront bounded context — Shopping Cart, Checkout and Orders.

Handles cart management (CQRS), guest cart merging, the checkout flow that
converts a cart into an order, and the order status/payment lifecycle.
"""

import structlog
from protean.domain import Domain

from storefront.utils.logging import configure_logging

configure_logging()

storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)
