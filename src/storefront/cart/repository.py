"""Repository for the Cart aggregate."""

from storefront.cart.cart import Cart, CartStatus
from storefront.cart.owner import CustomerOwner, Owner
from storefront.domain import storefront
from storefront.shared.clock import utcnow


@storefront.repository(part_of=Cart)
class CartRepository:
    """Owner-scoped lookups. A cart is never fetched by id on a shopper's behalf.

    A cart past its expiry is treated as gone even before the sweep deletes it.
    """

    def find_active_for_customer(self, customer_id) -> Cart | None:
        return self._first_live(customer_id=str(customer_id))

    def find_active_for_session(self, session_id) -> Cart | None:
        return self._first_live(session_id=str(session_id))

    def find_active(self, owner: Owner) -> Cart | None:
        if isinstance(owner, CustomerOwner):
            return self.find_active_for_customer(owner.customer_id)
        return self.find_active_for_session(owner.session_id)

    def find_expired(self, now=None) -> list[Cart]:
        """Active or abandoned carts whose expiry has passed."""
        now = now or utcnow()
        candidates = self._dao.query.filter(
            status__in=[CartStatus.ACTIVE.value, CartStatus.ABANDONED.value],
        ).all().items
        return [cart for cart in candidates if cart.is_expired(now)]

    def delete(self, cart: Cart) -> None:
        self._dao.delete(cart)

    def _first_live(self, **owner_filter) -> Cart | None:
        now = utcnow()
        carts = self._dao.query.filter(status=CartStatus.ACTIVE.value, **owner_filter).all().items
        return next((cart for cart in carts if not cart.is_expired(now)), None)
