"""Cart aggregate — priced lines a shopper accumulates before checkout.

A cart belongs to exactly one owner (a customer or a guest session) and is
only ever looked up through that owner. Totals are derived: every change to
lines or discounts recomputes them through the pricing engine before the
cart is persisted, so they are never hand-set.
"""

import json
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from storefront.cart.events import (
    CartAbandoned,
    CartCleared,
    CartConverted,
    CartCreated,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartReassigned,
    CartsMerged,
    CouponApplied,
    CouponRemoved,
)
from storefront.cart.owner import CUSTOMER_CART_TTL, CustomerOwner, GuestOwner, Owner
from storefront.domain import storefront
from storefront.errors import (
    DuplicateDiscount,
    EmptyCartDiscount,
    InvalidQuantity,
    ItemNotFound,
    QuantityLimitExceeded,
)
from storefront.pricing import get_pricing_policy
from storefront.pricing.engine import AppliedDiscount, Totals, compute_totals, line_total
from storefront.shared.clock import as_utc, utcnow
from storefront.shared.snapshots import ProductSnapshot

MAX_LINE_QUANTITY = 100

_TOTALS_TOLERANCE = 0.005


class CartStatus(Enum):
    ACTIVE = "active"
    ABANDONED = "abandoned"
    CONVERTED = "converted"


def normalize_variants(variants) -> list[dict]:
    """Coerce variant selections into a list of ``{"name", "value"}`` dicts."""
    if not variants:
        return []
    if isinstance(variants, str):
        variants = json.loads(variants)
    return [{"name": str(v["name"]), "value": str(v["value"])} for v in variants]


def variant_key(variants) -> tuple:
    """Order-insensitive identity of a variant selection."""
    return tuple(sorted((v["name"], v["value"]) for v in normalize_variants(variants)))


@storefront.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1, max_value=MAX_LINE_QUANTITY)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(default=0.0, min_value=0.0)
    selected_variants = Text()  # JSON array of {name, value}
    product = ValueObject(ProductSnapshot)
    added_at = DateTime()

    @property
    def variants(self) -> list[dict]:
        return normalize_variants(self.selected_variants)

    def matches(self, product_id, variants) -> bool:
        return str(self.product_id) == str(product_id) and variant_key(self.variants) == variant_key(variants)


@storefront.aggregate
class Cart:
    customer_id = Identifier()
    session_id = String(max_length=255)
    items = HasMany(CartItem)
    applied_discounts = Text()  # JSON array of {code, magnitude, type}
    subtotal = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    shipping = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default="USD")
    notes = String(max_length=500)
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    expires_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def cart_has_exactly_one_owner(self):
        if bool(self.customer_id) == bool(self.session_id):
            raise ValidationError({"owner": ["A cart belongs to either a customer or a guest session"]})

    @invariant.post
    def total_matches_components(self):
        expected = max(0.0, (self.subtotal or 0) + (self.tax or 0) + (self.shipping or 0) - (self.discount or 0))
        if abs((self.total or 0) - expected) > _TOTALS_TOLERANCE:
            raise ValidationError({"total": ["Total must equal subtotal + tax + shipping - discount"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, owner: Owner):
        now = utcnow()
        cart = cls(
            **owner.as_fields(),
            applied_discounts=json.dumps([]),
            currency=get_pricing_policy().currency,
            status=CartStatus.ACTIVE.value,
            expires_at=now + owner.ttl,
            created_at=now,
            updated_at=now,
        )
        cart.raise_(
            CartCreated(
                cart_id=str(cart.id),
                customer_id=owner.as_fields()["customer_id"],
                session_id=owner.as_fields()["session_id"],
                expires_at=cart.expires_at,
            )
        )
        return cart

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    @property
    def owner(self) -> Owner:
        if self.customer_id:
            return CustomerOwner(customer_id=str(self.customer_id))
        return GuestOwner(session_id=str(self.session_id))

    @property
    def discounts(self) -> list[AppliedDiscount]:
        raw = json.loads(self.applied_discounts) if self.applied_discounts else []
        return [AppliedDiscount.from_dict(d) for d in raw]

    @property
    def totals(self) -> Totals:
        return Totals(
            subtotal=self.subtotal or 0.0,
            tax=self.tax or 0.0,
            shipping=self.shipping or 0.0,
            discount=self.discount or 0.0,
            total=self.total or 0.0,
        )

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def is_active(self) -> bool:
        return self.status == CartStatus.ACTIVE.value

    def is_expired(self, now=None) -> bool:
        now = now or utcnow()
        return self.expires_at is not None and as_utc(self.expires_at) <= now

    def find_line(self, product_id, variants=None) -> CartItem | None:
        return next((i for i in self.items if i.matches(product_id, variants or [])), None)

    def get_item(self, item_id) -> CartItem:
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ItemNotFound(item_id=str(item_id))
        return item

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_line(self, product, quantity, variants=None) -> CartItem:
        """Add ``quantity`` of ``product`` or top up the line with the same variants.

        A new line captures the product's current price and display data; an
        existing line keeps the price it was first added at.
        """
        self._ensure_active()
        if quantity < 1 or quantity > MAX_LINE_QUANTITY:
            raise InvalidQuantity(quantity=quantity)

        variants = normalize_variants(variants)
        existing = self.find_line(product.id, variants)
        if existing is not None and existing.quantity + quantity > MAX_LINE_QUANTITY:
            raise QuantityLimitExceeded(quantity=existing.quantity + quantity)

        with atomic_change(self):
            if existing is not None:
                existing.quantity += quantity
                existing.line_total = line_total(existing.unit_price, existing.quantity)
                item = existing
            else:
                item = CartItem(
                    product_id=product.id,
                    quantity=quantity,
                    unit_price=product.price,
                    line_total=line_total(product.price, quantity),
                    selected_variants=json.dumps(variants),
                    product=ProductSnapshot.of(product),
                    added_at=utcnow(),
                )
                self.add_items(item)
            self._recompute()

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=str(product.id),
                quantity=quantity,
                unit_price=item.unit_price,
            )
        )
        return item

    def change_quantity(self, item_id, new_quantity) -> CartItem | None:
        """Set a line's quantity. Zero or less removes the line and returns None."""
        self._ensure_active()
        item = self.get_item(item_id)
        if new_quantity <= 0:
            self.remove_line(item_id)
            return None
        if new_quantity > MAX_LINE_QUANTITY:
            raise QuantityLimitExceeded(quantity=new_quantity)

        previous_quantity = item.quantity
        with atomic_change(self):
            item.quantity = new_quantity
            item.line_total = line_total(item.unit_price, new_quantity)
            self._recompute()

        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item.id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )
        return item

    def remove_line(self, item_id) -> None:
        self._ensure_active()
        item = self.get_item(item_id)
        with atomic_change(self):
            self.remove_items(item)
            self._recompute()

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=str(item.product_id),
            )
        )

    def clear(self) -> None:
        """Remove every line and every applied discount."""
        self._ensure_active()
        with atomic_change(self):
            self._empty()
            self._recompute()

        self.raise_(CartCleared(cart_id=str(self.id)))

    # -------------------------------------------------------------------
    # Discounts
    # -------------------------------------------------------------------
    def apply_discount(self, discount: AppliedDiscount) -> None:
        self._ensure_active()
        discounts = self.discounts
        if any(d.code == discount.code for d in discounts):
            raise DuplicateDiscount(code=discount.code)
        if self.is_empty:
            raise EmptyCartDiscount()

        discounts.append(discount)
        with atomic_change(self):
            self.applied_discounts = json.dumps([d.to_dict() for d in discounts])
            self._recompute()

        self.raise_(
            CouponApplied(
                cart_id=str(self.id),
                code=discount.code,
                discount=self.discount,
            )
        )

    def remove_discount(self, code: str) -> bool:
        """Drop a discount by code. Returns False when it was not applied."""
        self._ensure_active()
        discounts = self.discounts
        remaining = [d for d in discounts if d.code != code]
        if len(remaining) == len(discounts):
            return False

        with atomic_change(self):
            self.applied_discounts = json.dumps([d.to_dict() for d in remaining])
            self._recompute()

        self.raise_(CouponRemoved(cart_id=str(self.id), code=code))
        return True

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def reassign_to(self, customer_id) -> None:
        """Hand a guest cart over to a customer; it moves onto the customer expiry window."""
        self._ensure_active()
        previous_session_id = self.session_id
        now = utcnow()
        with atomic_change(self):
            self.customer_id = customer_id
            self.session_id = None
            self.expires_at = now + CUSTOMER_CART_TTL
            self.updated_at = now

        self.raise_(
            CartReassigned(
                cart_id=str(self.id),
                customer_id=str(customer_id),
                previous_session_id=previous_session_id,
            )
        )

    def record_merge(self, source_cart_id, lines_merged: int, lines_skipped: int) -> None:
        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                source_cart_id=str(source_cart_id),
                lines_merged=lines_merged,
                lines_skipped=lines_skipped,
            )
        )

    def retire(self, order_id) -> None:
        """Empty the cart and mark it converted after a successful checkout."""
        self._ensure_active()
        with atomic_change(self):
            self._empty()
            self._recompute()
            self.status = CartStatus.CONVERTED.value

        self.raise_(
            CartConverted(
                cart_id=str(self.id),
                customer_id=str(self.customer_id) if self.customer_id else None,
                order_id=str(order_id),
            )
        )

    def abandon(self) -> None:
        self._ensure_active()
        now = utcnow()
        self.status = CartStatus.ABANDONED.value
        self.updated_at = now

        self.raise_(CartAbandoned(cart_id=str(self.id), abandoned_at=now))

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _ensure_active(self) -> None:
        if not self.is_active:
            raise ValidationError({"status": [f"Cart is {self.status}; only active carts can change"]})

    def _empty(self) -> None:
        for item in list(self.items):
            self.remove_items(item)
        self.applied_discounts = json.dumps([])

    def _recompute(self) -> None:
        totals = compute_totals(self.items, self.discounts, get_pricing_policy())
        self.subtotal = totals.subtotal
        self.tax = totals.tax
        self.shipping = totals.shipping
        self.discount = totals.discount
        self.total = totals.total
        self.updated_at = utcnow()
