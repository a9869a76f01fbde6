import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture
from storefront.catalogue import reset_catalogue, set_catalogue
from storefront.catalogue.fake_adapter import InMemoryCatalogue
from storefront.catalogue.port import ProductImage, ProductRecord
from storefront.identity import reset_directory, set_directory
from storefront.identity.fake_adapter import InMemoryDirectory
from storefront.identity.port import CustomerRecord, SavedAddress
from storefront.pricing import reset_pricing_policy


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def catalogue():
    """A fresh in-memory catalogue per test, installed as the active adapter."""
    fake = InMemoryCatalogue()
    set_catalogue(fake)
    yield fake
    reset_catalogue()


@pytest.fixture(autouse=True)
def directory():
    fake = InMemoryDirectory()
    set_directory(fake)
    yield fake
    reset_directory()


@pytest.fixture(autouse=True)
def _pricing_policy():
    yield
    reset_pricing_policy()


def _product(product_id, **overrides) -> ProductRecord:
    fields = {
        "id": product_id,
        "name": f"Product {product_id}",
        "slug": f"product-{product_id}",
        "sku": f"SKU-{product_id}".upper(),
        "price": 25.0,
        "quantity": 50,
        "images": (
            ProductImage(url=f"https://cdn.example.com/{product_id}/side.jpg"),
            ProductImage(url=f"https://cdn.example.com/{product_id}/front.jpg", is_primary=True),
        ),
        "brand": "Acme",
        "category": "Gadgets",
    }
    fields.update(overrides)
    return ProductRecord(**fields)


def _customer(customer_id, address_ids) -> CustomerRecord:
    addresses = tuple(
        SavedAddress(
            id=address_id,
            first_name="Jordan",
            last_name="Lee",
            address_line1=f"{n} Main St",
            city="Springfield",
            state="IL",
            postal_code="62701",
            country="US",
            phone="555-0100",
            is_default=n == 1,
        )
        for n, address_id in enumerate(address_ids, start=1)
    )
    return CustomerRecord(
        id=customer_id,
        first_name="Jordan",
        last_name="Lee",
        email="jordan@example.com",
        phone="555-0100",
        addresses=addresses,
    )


@pytest.fixture()
def add_product(catalogue):
    """Seed the catalogue: ``add_product("prod-009", price=5.0, quantity=2)``."""

    def _add(product_id="prod-001", **overrides):
        return catalogue.add_product(_product(product_id, **overrides))

    return _add


@pytest.fixture()
def add_customer(directory):
    def _add(customer_id="cust-001", address_ids=("addr-home", "addr-work")):
        return directory.add_customer(_customer(customer_id, address_ids))

    return _add


@pytest.fixture()
def product(add_product):
    return add_product("prod-001", price=25.0, quantity=50)


@pytest.fixture()
def cheap_product(add_product):
    return add_product("prod-002", price=10.0, quantity=5)


@pytest.fixture()
def customer(add_customer):
    return add_customer("cust-001")
