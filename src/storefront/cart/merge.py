"""Guest → customer cart merge, run when a guest signs in.

The guest's lines go through ``CartStore.add_item`` one by one, so every line
is re-validated against the catalogue as it lands in the customer's cart.
A line that no longer fits is shrunk to the largest quantity that does, and
a line whose product is gone or unavailable is dropped.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.cart.cart import MAX_LINE_QUANTITY, Cart, CartItem
from storefront.cart.owner import CustomerOwner
from storefront.cart.store import CartStore
from storefront.domain import storefront
from storefront.errors import (
    InsufficientStock,
    ProductNotFound,
    ProductUnavailable,
    QuantityLimitExceeded,
)

logger = structlog.get_logger(__name__)


class CartMergeService:
    def __init__(self, store: CartStore | None = None):
        self.store = store or CartStore()

    def merge(self, customer_id, session_id) -> Cart:
        repo = current_domain.repository_for(Cart)
        guest_cart = repo.find_active_for_session(session_id)
        if guest_cart is None:
            return self.store.find_or_create(CustomerOwner(customer_id=str(customer_id)))

        customer_cart = repo.find_active_for_customer(customer_id)
        if customer_cart is None:
            guest_cart.reassign_to(customer_id)
            repo.add(guest_cart)
            logger.info(
                "Guest cart reassigned to customer",
                cart_id=str(guest_cart.id),
                customer_id=str(customer_id),
            )
            return guest_cart

        merged = skipped = 0
        for line in list(guest_cart.items):
            if self._merge_line(customer_cart, line):
                merged += 1
            else:
                skipped += 1

        repo.delete(guest_cart)
        customer_cart.record_merge(guest_cart.id, lines_merged=merged, lines_skipped=skipped)
        repo.add(customer_cart)

        logger.info(
            "Guest cart merged",
            cart_id=str(customer_cart.id),
            source_cart_id=str(guest_cart.id),
            lines_merged=merged,
            lines_skipped=skipped,
        )
        return customer_cart

    def _merge_line(self, cart: Cart, line: CartItem) -> bool:
        try:
            self.store.add_item(cart, line.product_id, line.quantity, line.variants)
            return True
        except (ProductNotFound, ProductUnavailable) as exc:
            logger.warning(
                "Skipped guest cart line",
                cart_id=str(cart.id),
                product_id=str(line.product_id),
                reason=exc.code,
            )
            return False
        except (InsufficientStock, QuantityLimitExceeded) as exc:
            fits = self._largest_fit(cart, line)
            if fits < 1:
                logger.warning(
                    "Skipped guest cart line",
                    cart_id=str(cart.id),
                    product_id=str(line.product_id),
                    reason=exc.code,
                )
                return False

            self.store.add_item(cart, line.product_id, fits, line.variants)
            logger.warning(
                "Shrunk guest cart line",
                cart_id=str(cart.id),
                product_id=str(line.product_id),
                requested=line.quantity,
                merged=fits,
                reason=exc.code,
            )
            return True

    def _largest_fit(self, cart: Cart, line: CartItem) -> int:
        product = self.store.catalogue.get_product(str(line.product_id))
        if product is None:
            return 0

        existing = cart.find_line(line.product_id, line.variants)
        current = existing.quantity if existing else 0
        room = MAX_LINE_QUANTITY - current
        if product.track_quantity:
            room = min(room, product.quantity - current)
        return min(room, line.quantity)


@storefront.command(part_of="Cart")
class MergeGuestCart:
    """Merge a guest session's cart into the signed-in customer's cart."""

    customer_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)


@storefront.command_handler(part_of=Cart)
class MergeGuestCartHandler:
    @handle(MergeGuestCart)
    def merge_guest_cart(self, command):
        cart = CartMergeService().merge(command.customer_id, command.session_id)
        return str(cart.id)
