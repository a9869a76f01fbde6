"""In-memory catalogue and inventory ledger for development and testing.

Holds product records in a dict and guards every stock mutation with a lock,
so concurrent checkouts against the same product behave like conditional
increment-by-delta updates on a real store.
"""

import threading
from dataclasses import replace

from storefront.catalogue.port import InventoryLedger, ProductCatalogue, ProductRecord
from storefront.errors import InsufficientStock, ProductNotFound


class InMemoryCatalogue(ProductCatalogue, InventoryLedger):
    """Product catalogue and stock ledger backed by process memory."""

    def __init__(self) -> None:
        self._products: dict[str, ProductRecord] = {}
        self._lock = threading.Lock()
        self.calls: list[dict] = []

    # -------------------------------------------------------------------
    # Seeding helpers
    # -------------------------------------------------------------------
    def add_product(self, product: ProductRecord) -> ProductRecord:
        with self._lock:
            self._products[str(product.id)] = product
        return product

    def update_product(self, product_id: str, **changes) -> ProductRecord:
        with self._lock:
            product = self._require(product_id)
            updated = replace(product, **changes)
            self._products[str(product_id)] = updated
        return updated

    def remove_product(self, product_id: str) -> None:
        with self._lock:
            self._products.pop(str(product_id), None)

    def stock_of(self, product_id: str) -> int:
        return self._require(product_id).quantity

    # -------------------------------------------------------------------
    # ProductCatalogue
    # -------------------------------------------------------------------
    def get_product(self, product_id: str) -> ProductRecord | None:
        return self._products.get(str(product_id))

    # -------------------------------------------------------------------
    # InventoryLedger
    # -------------------------------------------------------------------
    def decrement_stock(self, product_id: str, quantity: int) -> int:
        with self._lock:
            product = self._require(product_id)
            if product.quantity < quantity:
                raise InsufficientStock(
                    f"Insufficient stock for {product.name}. Available: {product.quantity}",
                    product_id=str(product_id),
                    available=product.quantity,
                    requested=quantity,
                )
            self._products[str(product_id)] = replace(product, quantity=product.quantity - quantity)
            self.calls.append({"method": "decrement_stock", "product_id": str(product_id), "quantity": quantity})
            return product.quantity - quantity

    def increment_stock(self, product_id: str, quantity: int) -> int:
        with self._lock:
            product = self._require(product_id)
            self._products[str(product_id)] = replace(product, quantity=product.quantity + quantity)
            self.calls.append({"method": "increment_stock", "product_id": str(product_id), "quantity": quantity})
            return product.quantity + quantity

    def _require(self, product_id: str) -> ProductRecord:
        product = self._products.get(str(product_id))
        if product is None:
            raise ProductNotFound(f"Product {product_id} not found", product_id=str(product_id))
        return product
