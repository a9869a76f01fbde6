"""Coupon codes — the discount table plus the apply/remove commands and handler."""

from protean import handle
from protean.fields import Identifier, String

from storefront.cart.cart import Cart
from storefront.cart.owner import owner_from
from storefront.cart.store import CartStore
from storefront.domain import storefront
from storefront.errors import InvalidCouponCode
from storefront.pricing.engine import AppliedDiscount, DiscountType

COUPONS = {
    "SAVE10": AppliedDiscount(code="SAVE10", magnitude=10, type=DiscountType.PERCENTAGE),
    "SAVE20": AppliedDiscount(code="SAVE20", magnitude=20, type=DiscountType.FIXED),
    "WELCOME": AppliedDiscount(code="WELCOME", magnitude=15, type=DiscountType.PERCENTAGE),
}


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def lookup_coupon(code: str) -> AppliedDiscount:
    """Resolve a coupon code, case-insensitively."""
    coupon = COUPONS.get(normalize_code(code))
    if coupon is None:
        raise InvalidCouponCode(code=code)
    return coupon


@storefront.command(part_of="Cart")
class ApplyCoupon:
    customer_id = Identifier()
    session_id = String(max_length=255)
    code = String(required=True, max_length=50)


@storefront.command(part_of="Cart")
class RemoveCoupon:
    customer_id = Identifier()
    session_id = String(max_length=255)
    code = String(required=True, max_length=50)


@storefront.command_handler(part_of=Cart)
class CouponHandler:
    @handle(ApplyCoupon)
    def apply_coupon(self, command):
        coupon = lookup_coupon(command.code)
        store = CartStore()
        cart = store.find_or_create(owner_from(command.customer_id, command.session_id))
        store.apply_discount(cart, coupon.code, coupon.magnitude, coupon.type)
        return str(cart.id)

    @handle(RemoveCoupon)
    def remove_coupon(self, command):
        store = CartStore()
        cart = store.find_or_create(owner_from(command.customer_id, command.session_id))
        store.remove_discount(cart, normalize_code(command.code))
        return str(cart.id)
