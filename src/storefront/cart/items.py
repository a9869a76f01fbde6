"""Cart item management — commands and handler."""

import json

from protean import handle
from protean.fields import Identifier, Integer, String, Text

from storefront.cart.cart import Cart
from storefront.cart.owner import owner_from
from storefront.cart.store import CartStore
from storefront.domain import storefront


@storefront.command(part_of="Cart")
class AddCartItem:
    customer_id = Identifier()
    session_id = String(max_length=255)
    product_id = Identifier(required=True)
    quantity = Integer(default=1)
    selected_variants = Text()  # JSON: list of {name, value}


@storefront.command(part_of="Cart")
class UpdateCartItemQuantity:
    customer_id = Identifier()
    session_id = String(max_length=255)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)


@storefront.command(part_of="Cart")
class RemoveCartItem:
    customer_id = Identifier()
    session_id = String(max_length=255)
    item_id = Identifier(required=True)


@storefront.command(part_of="Cart")
class ClearCart:
    customer_id = Identifier()
    session_id = String(max_length=255)


@storefront.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddCartItem)
    def add_cart_item(self, command):
        store = CartStore()
        cart = store.find_or_create(owner_from(command.customer_id, command.session_id))
        variants = json.loads(command.selected_variants) if command.selected_variants else []
        store.add_item(cart, command.product_id, command.quantity, variants)
        return str(cart.id)

    @handle(UpdateCartItemQuantity)
    def update_cart_item_quantity(self, command):
        store = CartStore()
        cart = store.find_or_create(owner_from(command.customer_id, command.session_id))
        store.update_item_quantity(cart, command.item_id, command.quantity)
        return str(cart.id)

    @handle(RemoveCartItem)
    def remove_cart_item(self, command):
        store = CartStore()
        cart = store.find_or_create(owner_from(command.customer_id, command.session_id))
        store.remove_item(cart, command.item_id)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        store = CartStore()
        cart = store.find_or_create(owner_from(command.customer_id, command.session_id))
        store.clear(cart)
        return str(cart.id)
