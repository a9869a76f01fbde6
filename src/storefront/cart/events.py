"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Cart")
class CartCreated:
    """An empty cart was opened for a customer or a guest session."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier()
    session_id = String(max_length=255)
    expires_at = DateTime(required=True)


@storefront.event(part_of="Cart")
class CartItemAdded:
    """A product was added to the cart, or an existing line was topped up."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    unit_price = Float(required=True)


@storefront.event(part_of="Cart")
class CartItemQuantityUpdated:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="Cart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class CartCleared:
    """All lines and discounts were removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class CouponApplied:
    __version__ = 1

    cart_id = Identifier(required=True)
    code = String(required=True, max_length=50)
    discount = Float(required=True)


@storefront.event(part_of="Cart")
class CouponRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    code = String(required=True, max_length=50)


@storefront.event(part_of="Cart")
class CartReassigned:
    """A guest cart was handed over to the customer who signed in."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    previous_session_id = String(max_length=255)


@storefront.event(part_of="Cart")
class CartsMerged:
    """A guest cart's lines were merged into a registered customer's cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    source_cart_id = Identifier(required=True)
    lines_merged = Integer(required=True)
    lines_skipped = Integer(required=True)


@storefront.event(part_of="Cart")
class CartConverted:
    """The cart was checked out and retired."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier()
    order_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class CartAbandoned:
    __version__ = 1

    cart_id = Identifier(required=True)
    abandoned_at = DateTime(required=True)
