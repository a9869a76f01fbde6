"""Catalogue adapter factory.

Provides get_catalogue() / set_catalogue() to swap implementations. The
active adapter serves both product lookups and the inventory ledger.
"""

from storefront.catalogue.fake_adapter import InMemoryCatalogue
from storefront.catalogue.port import InventoryLedger, ProductCatalogue

_current_catalogue: ProductCatalogue | None = None


def get_catalogue() -> ProductCatalogue:
    """Return the current product catalogue. Defaults to InMemoryCatalogue."""
    global _current_catalogue
    if _current_catalogue is None:
        _current_catalogue = InMemoryCatalogue()
    return _current_catalogue


def get_ledger() -> InventoryLedger:
    """Return the inventory ledger of the current catalogue."""
    catalogue = get_catalogue()
    if not isinstance(catalogue, InventoryLedger):
        raise TypeError(f"{type(catalogue).__name__} does not provide an inventory ledger")
    return catalogue


def set_catalogue(catalogue: ProductCatalogue) -> None:
    """Override the active catalogue (useful for tests)."""
    global _current_catalogue
    _current_catalogue = catalogue


def reset_catalogue() -> None:
    """Reset to default catalogue."""
    global _current_catalogue
    _current_catalogue = None
