"""In-memory customer directory for development and testing."""

from storefront.identity.port import CustomerDirectory, CustomerRecord


class InMemoryDirectory(CustomerDirectory):
    def __init__(self) -> None:
        self._customers: dict[str, CustomerRecord] = {}

    def add_customer(self, customer: CustomerRecord) -> CustomerRecord:
        self._customers[str(customer.id)] = customer
        return customer

    def get_customer(self, customer_id: str) -> CustomerRecord | None:
        return self._customers.get(str(customer_id))
