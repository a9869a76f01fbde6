"""Customer directory port (abstract interface).

Customer accounts and their address books belong to the identity subsystem.
Checkout only needs to read a buyer's contact details and pick addresses
out of their saved list.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class SavedAddress:
    id: str
    first_name: str
    last_name: str
    address_line1: str
    city: str
    state: str
    postal_code: str
    country: str
    company: str | None = None
    address_line2: str | None = None
    phone: str | None = None
    is_default: bool = False


@dataclass(frozen=True)
class CustomerRecord:
    id: str
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    addresses: tuple[SavedAddress, ...] = field(default_factory=tuple)

    def find_address(self, address_id: str | None) -> SavedAddress | None:
        if address_id is None:
            return None
        return next((a for a in self.addresses if str(a.id) == str(address_id)), None)


class CustomerDirectory(ABC):
    """Read access to customer records."""

    @abstractmethod
    def get_customer(self, customer_id: str) -> CustomerRecord | None:
        """Return the customer with their saved addresses, or None."""
        ...
