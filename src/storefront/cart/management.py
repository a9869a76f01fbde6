"""Cart lifecycle — abandonment and the expiry sweep.

``ExpireCarts`` is meant to be triggered periodically by an external
scheduler. Expired carts are deleted outright; orders never depend on them.
"""

from protean import handle
from protean.fields import DateTime, Identifier, String

from storefront.cart.cart import Cart
from storefront.cart.owner import owner_from
from storefront.cart.store import CartStore
from storefront.domain import storefront
from storefront.errors import CartNotFound
from storefront.shared.clock import as_utc


@storefront.command(part_of="Cart")
class AbandonCart:
    """Flag the owner's active cart as abandoned."""

    customer_id = Identifier()
    session_id = String(max_length=255)


@storefront.command(part_of="Cart")
class ExpireCarts:
    """Delete carts whose expiry has passed."""

    as_of = DateTime()  # Optional: defaults to now


@storefront.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(AbandonCart)
    def abandon_cart(self, command):
        store = CartStore()
        cart = store.repository.find_active(owner_from(command.customer_id, command.session_id))
        if cart is None:
            raise CartNotFound()
        store.abandon(cart)
        return str(cart.id)

    @handle(ExpireCarts)
    def expire_carts(self, command):
        return CartStore().expire(as_utc(command.as_of))
