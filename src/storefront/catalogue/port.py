"""Catalogue and inventory ports (abstract interfaces).

The storefront never owns products or stock counts. It reads product records
through ``ProductCatalogue`` and mutates stock only through the
``InventoryLedger``, whose two operations are the only atomic writes in the
checkout flow.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

ACTIVE = "active"
PUBLIC = "public"


@dataclass(frozen=True)
class ProductImage:
    url: str
    is_primary: bool = False


@dataclass(frozen=True)
class ProductRecord:
    """Read model of a catalogue product, as of the moment it was fetched."""

    id: str
    name: str
    slug: str
    sku: str
    price: float
    status: str = ACTIVE
    visibility: str = PUBLIC
    track_quantity: bool = True
    quantity: int = 0
    low_stock_threshold: int = 10
    images: tuple[ProductImage, ...] = field(default_factory=tuple)
    brand: str | None = None
    category: str | None = None

    @property
    def is_available(self) -> bool:
        return self.status == ACTIVE and self.visibility == PUBLIC

    @property
    def primary_image(self) -> str | None:
        primary = next((img for img in self.images if img.is_primary), None)
        if primary is not None:
            return primary.url
        return self.images[0].url if self.images else None

    def has_stock_for(self, quantity: int) -> bool:
        return not self.track_quantity or self.quantity >= quantity

    @property
    def is_low_on_stock(self) -> bool:
        return self.track_quantity and self.quantity <= self.low_stock_threshold


class ProductCatalogue(ABC):
    """Product lookup owned by the catalogue subsystem."""

    @abstractmethod
    def get_product(self, product_id: str) -> ProductRecord | None:
        """Return the product, or None when it no longer exists."""
        ...


class InventoryLedger(ABC):
    """Atomic stock counter mutations owned by the catalogue subsystem."""

    @abstractmethod
    def decrement_stock(self, product_id: str, quantity: int) -> int:
        """Atomically remove ``quantity`` units and return the new count.

        Raises InsufficientStock instead of letting the counter go negative.
        """
        ...

    @abstractmethod
    def increment_stock(self, product_id: str, quantity: int) -> int:
        """Atomically add ``quantity`` units back and return the new count."""
        ...
