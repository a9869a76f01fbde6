"""Snapshot value objects shared by carts and orders.

A snapshot freezes what the shopper saw at the moment it was taken. Later
edits to the product, the customer profile or the address book never reach
back into a cart line or a placed order.
"""

from protean.fields import String

from storefront.domain import storefront


@storefront.value_object
class ProductSnapshot:
    """Display data of a product, captured when it was added or ordered."""

    name = String(required=True, max_length=255)
    slug = String(max_length=255)
    sku = String(max_length=100)
    image = String(max_length=1000)
    brand = String(max_length=255)
    category = String(max_length=255)

    @classmethod
    def of(cls, product) -> "ProductSnapshot":
        return cls(
            name=product.name,
            slug=product.slug,
            sku=product.sku,
            image=product.primary_image,
            brand=product.brand,
            category=product.category,
        )


@storefront.value_object
class AddressSnapshot:
    """A shipping or billing address copied out of the customer's address book."""

    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    company = String(max_length=255)
    address_line1 = String(required=True, max_length=255)
    address_line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=30)

    @classmethod
    def of(cls, address) -> "AddressSnapshot":
        return cls(
            first_name=address.first_name,
            last_name=address.last_name,
            company=address.company,
            address_line1=address.address_line1,
            address_line2=address.address_line2,
            city=address.city,
            state=address.state,
            postal_code=address.postal_code,
            country=address.country,
            phone=address.phone,
        )


@storefront.value_object
class BuyerSnapshot:
    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    email = String(required=True, max_length=254)
    phone = String(max_length=30)

    @classmethod
    def of(cls, customer) -> "BuyerSnapshot":
        return cls(
            first_name=customer.first_name,
            last_name=customer.last_name,
            email=customer.email,
            phone=customer.phone,
        )
