"""Cart ownership: a cart belongs to a customer or to an anonymous session, never both."""

from dataclasses import dataclass
from datetime import timedelta

from storefront.errors import AmbiguousOwner, OwnerRequired

CUSTOMER_CART_TTL = timedelta(days=30)
GUEST_CART_TTL = timedelta(days=7)


@dataclass(frozen=True)
class CustomerOwner:
    customer_id: str

    ttl = CUSTOMER_CART_TTL

    def as_fields(self) -> dict:
        return {"customer_id": self.customer_id, "session_id": None}


@dataclass(frozen=True)
class GuestOwner:
    session_id: str

    ttl = GUEST_CART_TTL

    def as_fields(self) -> dict:
        return {"customer_id": None, "session_id": self.session_id}


Owner = CustomerOwner | GuestOwner


def owner_from(customer_id: str | None = None, session_id: str | None = None) -> Owner:
    """Build the owner of a cart from the caller's identifiers.

    Raises:
        OwnerRequired: neither identifier was supplied.
        AmbiguousOwner: both identifiers were supplied.
    """
    if customer_id and session_id:
        raise AmbiguousOwner()
    if customer_id:
        return CustomerOwner(customer_id=str(customer_id))
    if session_id:
        return GuestOwner(session_id=str(session_id))
    raise OwnerRequired()
