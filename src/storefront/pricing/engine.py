"""Pricing engine — subtotal, tax, shipping, discount and total for a set of lines.

Pure functions only: the cart and the checkout call ``compute_totals`` right
before they persist, so totals are always derived and never hand-set.

Amounts are rounded to cents per component, and the total is derived from
the rounded components, so ``total == max(0, subtotal + tax + shipping - discount)``
holds to the cent for every result.
"""

import os
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from enum import Enum


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def to_cents(amount: float) -> float:
    return round(float(amount), 2)


def line_total(unit_price: float, quantity: int) -> float:
    return to_cents(unit_price * quantity)


@dataclass(frozen=True)
class AppliedDiscount:
    """A coupon applied to a cart or order: percentage of the subtotal or a fixed amount."""

    code: str
    magnitude: float
    type: DiscountType = DiscountType.PERCENTAGE

    def amount_for(self, subtotal: float) -> float:
        if self.type == DiscountType.PERCENTAGE:
            return subtotal * self.magnitude / 100
        return self.magnitude

    def to_dict(self) -> dict:
        return {"code": self.code, "magnitude": self.magnitude, "type": self.type.value}

    @classmethod
    def from_dict(cls, data: dict) -> "AppliedDiscount":
        return cls(
            code=data["code"],
            magnitude=float(data["magnitude"]),
            type=DiscountType(data.get("type", DiscountType.PERCENTAGE.value)),
        )


@dataclass(frozen=True)
class PricingPolicy:
    """Flat tax rate and flat shipping fee with a free-shipping threshold."""

    tax_rate: float = 0.10
    free_shipping_threshold: float = 100.0
    flat_shipping_fee: float = 10.0
    currency: str = "USD"

    @classmethod
    def from_env(cls) -> "PricingPolicy":
        defaults = cls()
        return cls(
            tax_rate=float(os.getenv("STOREFRONT_TAX_RATE", defaults.tax_rate)),
            free_shipping_threshold=float(
                os.getenv("STOREFRONT_FREE_SHIPPING_THRESHOLD", defaults.free_shipping_threshold)
            ),
            flat_shipping_fee=float(os.getenv("STOREFRONT_FLAT_SHIPPING_FEE", defaults.flat_shipping_fee)),
            currency=os.getenv("STOREFRONT_CURRENCY", defaults.currency).upper(),
        )


@dataclass(frozen=True)
class Totals:
    subtotal: float = 0.0
    tax: float = 0.0
    shipping: float = 0.0
    discount: float = 0.0
    total: float = 0.0

    @classmethod
    def zero(cls) -> "Totals":
        return cls()

    def as_dict(self) -> dict:
        return asdict(self)


def compute_totals(
    line_items: Iterable,
    applied_discounts: Iterable[AppliedDiscount] = (),
    policy: PricingPolicy | None = None,
) -> Totals:
    """Price a set of lines.

    Args:
        line_items: Objects exposing ``unit_price`` and ``quantity``.
        applied_discounts: Discounts to stack additively (no cap).
        policy: Tax/shipping policy; defaults to ``PricingPolicy()``.

    An empty set of lines costs nothing: shipping and discounts only apply
    when there is something to buy.
    """
    policy = policy or PricingPolicy()
    lines = list(line_items)
    if not lines:
        return Totals.zero()

    subtotal = to_cents(sum(line_total(line.unit_price, line.quantity) for line in lines))
    tax = to_cents(subtotal * policy.tax_rate)
    shipping = 0.0 if subtotal >= policy.free_shipping_threshold else to_cents(policy.flat_shipping_fee)
    discount = to_cents(sum(d.amount_for(subtotal) for d in applied_discounts))
    total = to_cents(max(0.0, subtotal + tax + shipping - discount))

    return Totals(subtotal=subtotal, tax=tax, shipping=shipping, discount=discount, total=total)
