"""CartStore — owner-scoped cart operations backed by the catalogue.

Every operation validates against the catalogue first and only then touches
the aggregate, so a failed operation never reaches the repository and the
persisted cart stays as it was.
"""

from dataclasses import dataclass, field

import structlog
from protean.utils.globals import current_domain

from storefront.cart.cart import MAX_LINE_QUANTITY, Cart, CartItem
from storefront.cart.owner import Owner
from storefront.catalogue import get_catalogue
from storefront.catalogue.port import ProductCatalogue, ProductRecord
from storefront.errors import (
    EmptyCart,
    InsufficientStock,
    InvalidQuantity,
    ProductNotFound,
    ProductUnavailable,
    QuantityLimitExceeded,
)
from storefront.pricing.engine import AppliedDiscount, DiscountType

logger = structlog.get_logger(__name__)

PRICE_CHANGE_TOLERANCE = 0.01


@dataclass
class CartValidation:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class CartStore:
    def __init__(self, catalogue: ProductCatalogue | None = None):
        self._catalogue = catalogue

    @property
    def catalogue(self) -> ProductCatalogue:
        return self._catalogue or get_catalogue()

    @property
    def repository(self):
        return current_domain.repository_for(Cart)

    # -------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------
    def find_or_create(self, owner: Owner) -> Cart:
        """Return the owner's active cart, opening an empty one if there is none."""
        cart = self.repository.find_active(owner)
        if cart is not None:
            return cart

        cart = Cart.create(owner)
        self.repository.add(cart)
        logger.info("Cart created", cart_id=str(cart.id), **owner.as_fields())
        return cart

    def get_cart(self, owner: Owner) -> Cart:
        """Return the owner's cart without lines whose product is gone or unavailable."""
        cart = self.find_or_create(owner)

        stale = []
        for item in cart.items:
            product = self.catalogue.get_product(str(item.product_id))
            if product is None or not product.is_available:
                stale.append(item)

        if stale:
            for item in stale:
                cart.remove_line(item.id)
            self.repository.add(cart)
            logger.info(
                "Pruned unavailable products from cart",
                cart_id=str(cart.id),
                product_ids=[str(item.product_id) for item in stale],
            )
        return cart

    def validate(self, cart: Cart) -> CartValidation:
        """Check every line against the catalogue ahead of checkout.

        Line problems are collected rather than raised; only an empty cart raises.

        Lines whose product is gone, unavailable or short of stock are errors.
        A price that moved since the line was added, or stock at or below the
        product's low-stock threshold, is a warning.
        """
        if cart is None or cart.is_empty:
            raise EmptyCart()

        result = CartValidation()
        for item in cart.items:
            product = self.catalogue.get_product(str(item.product_id))
            if product is None:
                result.errors.append("Product in cart no longer exists")
                continue
            if not product.is_available:
                result.errors.append(f"{product.name} is no longer available")
                continue
            if not product.has_stock_for(item.quantity):
                result.errors.append(
                    f"{product.name}: Only {product.quantity} items available, but {item.quantity} requested"
                )
                continue

            if abs(item.unit_price - product.price) > PRICE_CHANGE_TOLERANCE:
                result.warnings.append(
                    f"{product.name}: Price has changed from {item.unit_price:.2f} to {product.price:.2f}"
                )
            if product.is_low_on_stock:
                result.warnings.append(f"{product.name} is running low on stock")

        logger.info(
            "Cart validated",
            cart_id=str(cart.id),
            errors=len(result.errors),
            warnings=len(result.warnings),
        )
        return result

    # -------------------------------------------------------------------
    # Lines
    # -------------------------------------------------------------------
    def add_item(self, cart: Cart, product_id, quantity: int = 1, variants=None) -> CartItem:
        if not isinstance(quantity, int) or quantity < 1 or quantity > MAX_LINE_QUANTITY:
            raise InvalidQuantity(quantity=quantity)

        product = self._available_product(product_id)
        existing = cart.find_line(product.id, variants)
        requested = quantity + (existing.quantity if existing else 0)
        self._ensure_stock(product, requested)
        if requested > MAX_LINE_QUANTITY:
            raise QuantityLimitExceeded(quantity=requested)

        item = cart.add_line(product, quantity, variants)
        self.repository.add(cart)
        logger.info(
            "Item added to cart",
            cart_id=str(cart.id),
            product_id=str(product.id),
            quantity=quantity,
            line_quantity=item.quantity,
        )
        return item

    def update_item_quantity(self, cart: Cart, item_id, new_quantity: int) -> CartItem | None:
        """Set a line's quantity; zero or less removes the line."""
        item = cart.get_item(item_id)
        if new_quantity > MAX_LINE_QUANTITY:
            raise QuantityLimitExceeded(quantity=new_quantity)
        if new_quantity > 0:
            product = self._available_product(item.product_id)
            self._ensure_stock(product, new_quantity)

        updated = cart.change_quantity(item_id, new_quantity)
        self.repository.add(cart)
        logger.info(
            "Cart item quantity updated",
            cart_id=str(cart.id),
            item_id=str(item_id),
            quantity=new_quantity,
        )
        return updated

    def remove_item(self, cart: Cart, item_id) -> None:
        cart.remove_line(item_id)
        self.repository.add(cart)
        logger.info("Item removed from cart", cart_id=str(cart.id), item_id=str(item_id))

    def clear(self, cart: Cart) -> None:
        cart.clear()
        self.repository.add(cart)
        logger.info("Cart cleared", cart_id=str(cart.id))

    # -------------------------------------------------------------------
    # Discounts
    # -------------------------------------------------------------------
    def apply_discount(
        self,
        cart: Cart,
        code: str,
        magnitude: float,
        type: DiscountType = DiscountType.PERCENTAGE,
    ) -> AppliedDiscount:
        discount = AppliedDiscount(code=code, magnitude=magnitude, type=DiscountType(type))
        cart.apply_discount(discount)
        self.repository.add(cart)
        logger.info("Discount applied", cart_id=str(cart.id), code=code, discount=cart.discount)
        return discount

    def remove_discount(self, cart: Cart, code: str) -> None:
        if cart.remove_discount(code):
            self.repository.add(cart)
            logger.info("Discount removed", cart_id=str(cart.id), code=code)

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def abandon(self, cart: Cart) -> None:
        cart.abandon()
        self.repository.add(cart)
        logger.info("Cart abandoned", cart_id=str(cart.id))

    def expire(self, now=None) -> int:
        """Delete every active or abandoned cart past its expiry. Returns how many went."""
        expired = self.repository.find_expired(now)
        for cart in expired:
            self.repository.delete(cart)

        if expired:
            logger.info("Expired carts deleted", count=len(expired))
        return len(expired)

    # -------------------------------------------------------------------
    # Catalogue checks
    # -------------------------------------------------------------------
    def _available_product(self, product_id) -> ProductRecord:
        product = self.catalogue.get_product(str(product_id))
        if product is None:
            raise ProductNotFound(product_id=str(product_id))
        if not product.is_available:
            raise ProductUnavailable(f"{product.name} is not available", product_id=str(product_id))
        return product

    @staticmethod
    def _ensure_stock(product: ProductRecord, quantity: int) -> None:
        if not product.has_stock_for(quantity):
            raise InsufficientStock(
                f"Insufficient stock for {product.name}. Available: {product.quantity}",
                product_id=str(product.id),
                available=product.quantity,
                requested=quantity,
            )
