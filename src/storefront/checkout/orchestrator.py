"""CheckoutOrchestrator — turns a customer's active cart into an order.

Flow:
    1. Resolve the buyer and their shipping/billing addresses
    2. Load the active cart (it must have lines)
    3. Validate every line against the catalogue, aborting on the first failure
    4. Snapshot lines into order items and price them
    5. Reserve stock: conditional decrement per tracked line
    6. Persist the order
    7. Retire the cart

Steps 5 and 6 form a saga. A decrement that fails undoes the decrements
already applied, and so does a failure to persist the order. Step 7 runs
after the order exists; its failure is logged and the order still stands.
"""

import structlog
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart, CartItem
from storefront.catalogue import get_catalogue, get_ledger
from storefront.catalogue.port import InventoryLedger, ProductCatalogue, ProductRecord
from storefront.errors import (
    AddressNotFound,
    CustomerNotFound,
    EmptyCart,
    InsufficientStock,
    InvalidRequest,
    ProductGone,
    ProductUnavailable,
)
from storefront.identity import get_directory
from storefront.identity.port import CustomerDirectory, CustomerRecord
from storefront.order.order import Order, OrderItem, PaymentMethod, generate_order_number
from storefront.pricing import get_pricing_policy
from storefront.pricing.engine import compute_totals, line_total
from storefront.shared.snapshots import AddressSnapshot, BuyerSnapshot, ProductSnapshot

logger = structlog.get_logger(__name__)


class CheckoutOrchestrator:
    def __init__(
        self,
        catalogue: ProductCatalogue | None = None,
        ledger: InventoryLedger | None = None,
        directory: CustomerDirectory | None = None,
    ):
        self._catalogue = catalogue
        self._ledger = ledger
        self._directory = directory

    @property
    def catalogue(self) -> ProductCatalogue:
        return self._catalogue or get_catalogue()

    @property
    def ledger(self) -> InventoryLedger:
        return self._ledger or get_ledger()

    @property
    def directory(self) -> CustomerDirectory:
        return self._directory or get_directory()

    def checkout(
        self,
        customer_id,
        shipping_address_id,
        billing_address_id=None,
        payment_method: str = PaymentMethod.CREDIT_CARD.value,
        special_instructions: str | None = None,
        use_shipping_as_billing: bool = True,
    ) -> Order:
        try:
            payment_method = PaymentMethod(payment_method).value
        except ValueError:
            raise InvalidRequest(f"Unsupported payment method: {payment_method}") from None

        customer = self._resolve_customer(customer_id)
        shipping_address = self._resolve_address(customer, shipping_address_id, "shipping")
        if use_shipping_as_billing:
            billing_address = shipping_address
        else:
            billing_address = self._resolve_address(customer, billing_address_id, "billing")

        carts = current_domain.repository_for(Cart)
        cart = carts.find_active_for_customer(customer.id)
        if cart is None or cart.is_empty:
            raise EmptyCart()

        products = [self._validate_line(line) for line in cart.items]
        items = [self._snapshot(line, product) for line, product in zip(cart.items, products, strict=True)]
        totals = compute_totals(items, cart.discounts, get_pricing_policy())

        reserved = self._reserve_stock(items)
        try:
            order = Order.place(
                order_number=generate_order_number(),
                customer_id=customer.id,
                buyer=BuyerSnapshot.of(customer),
                items=items,
                totals=totals,
                shipping_address=shipping_address,
                billing_address=billing_address,
                payment_method=payment_method,
                discounts=cart.discounts,
                special_instructions=special_instructions,
                currency=cart.currency or get_pricing_policy().currency,
            )
            current_domain.repository_for(Order).add(order)
        except Exception:
            logger.error("Order could not be persisted, releasing reserved stock", customer_id=str(customer.id))
            self._release_stock(reserved)
            raise

        self._retire_cart(carts, cart, order)

        logger.info(
            "Checkout completed",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=str(customer.id),
            total=order.total,
            item_count=order.item_count,
        )
        return order

    # -------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------
    def _resolve_customer(self, customer_id) -> CustomerRecord:
        customer = self.directory.get_customer(str(customer_id))
        if customer is None:
            raise CustomerNotFound(customer_id=str(customer_id))
        return customer

    @staticmethod
    def _resolve_address(customer: CustomerRecord, address_id, kind: str) -> AddressSnapshot:
        address = customer.find_address(address_id)
        if address is None:
            raise AddressNotFound(f"{kind.capitalize()} address not found", address_id=address_id)
        return AddressSnapshot.of(address)

    def _validate_line(self, line: CartItem) -> ProductRecord:
        product = self.catalogue.get_product(str(line.product_id))
        name = line.product.name if line.product else str(line.product_id)
        if product is None:
            raise ProductGone(f"{name} is no longer available", product_id=str(line.product_id))
        if not product.is_available:
            raise ProductUnavailable(f"{product.name} is not available", product_id=str(product.id))
        if not product.has_stock_for(line.quantity):
            raise InsufficientStock(
                f"Insufficient stock for {product.name}. Available: {product.quantity}",
                product_id=str(product.id),
                available=product.quantity,
                requested=line.quantity,
            )
        return product

    @staticmethod
    def _snapshot(line: CartItem, product: ProductRecord) -> OrderItem:
        return OrderItem(
            product_id=str(product.id),
            product=ProductSnapshot.of(product),
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line_total(line.unit_price, line.quantity),
            selected_variants=line.selected_variants,
            inventory_tracked=product.track_quantity,
        )

    # -------------------------------------------------------------------
    # Stock saga
    # -------------------------------------------------------------------
    def _reserve_stock(self, items: list[OrderItem]) -> list[OrderItem]:
        reserved = []
        for item in items:
            if not item.inventory_tracked:
                continue
            try:
                self.ledger.decrement_stock(str(item.product_id), item.quantity)
            except Exception:
                logger.warning(
                    "Stock reservation failed, releasing earlier reservations",
                    product_id=str(item.product_id),
                    quantity=item.quantity,
                    reserved_lines=len(reserved),
                )
                self._release_stock(reserved)
                raise
            reserved.append(item)
        return reserved

    def _release_stock(self, reserved: list[OrderItem]) -> None:
        for item in reversed(reserved):
            try:
                self.ledger.increment_stock(str(item.product_id), item.quantity)
                logger.info("Stock compensated", product_id=str(item.product_id), quantity=item.quantity)
            except Exception:
                logger.exception(
                    "Stock compensation failed",
                    product_id=str(item.product_id),
                    quantity=item.quantity,
                )

    @staticmethod
    def _retire_cart(carts, cart: Cart, order: Order) -> None:
        try:
            cart.retire(order.id)
            carts.add(cart)
        except Exception:
            logger.exception(
                "Cart could not be retired after checkout",
                cart_id=str(cart.id),
                order_id=str(order.id),
            )
