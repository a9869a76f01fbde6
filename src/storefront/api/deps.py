"""Caller identity for the HTTP boundary.

Authentication happens upstream; the gateway forwards who is calling in
``X-Customer-Id``, ``X-Session-Id`` and ``X-Role`` headers.
"""

from dataclasses import dataclass

from fastapi import Depends, Header

from storefront.cart.owner import CustomerOwner, GuestOwner, Owner
from storefront.errors import AccessDenied, AuthenticationRequired, OwnerRequired

PRIVILEGED_ROLES = frozenset({"admin", "super_admin"})


@dataclass(frozen=True)
class Caller:
    customer_id: str | None = None
    session_id: str | None = None
    role: str | None = None

    @property
    def is_privileged(self) -> bool:
        return (self.role or "").lower() in PRIVILEGED_ROLES

    @property
    def owner(self) -> Owner:
        """A signed-in customer owns their cart even while a guest session lingers."""
        if self.customer_id:
            return CustomerOwner(customer_id=self.customer_id)
        if self.session_id:
            return GuestOwner(session_id=self.session_id)
        raise OwnerRequired()

    def owner_fields(self) -> dict:
        return self.owner.as_fields()


def get_caller(
    x_customer_id: str | None = Header(default=None),
    x_session_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> Caller:
    return Caller(customer_id=x_customer_id or None, session_id=x_session_id or None, role=x_role or None)


def require_customer(caller: Caller = Depends(get_caller)) -> Caller:
    if not caller.customer_id:
        raise AuthenticationRequired()
    return caller


def require_privileged(caller: Caller = Depends(require_customer)) -> Caller:
    if not caller.is_privileged:
        raise AccessDenied("Admin role required")
    return caller
