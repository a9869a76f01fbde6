"""Tests for the pricing engine."""

from dataclasses import dataclass

import pytest
from storefront.pricing import get_pricing_policy, reset_pricing_policy, set_pricing_policy
from storefront.pricing.engine import AppliedDiscount, DiscountType, PricingPolicy, Totals, compute_totals


@dataclass
class Line:
    unit_price: float
    quantity: int


class TestComputeTotals:
    def test_no_lines_cost_nothing(self):
        discounts = [AppliedDiscount("SAVE20", 20, DiscountType.FIXED)]
        assert compute_totals([], discounts) == Totals.zero()

    def test_below_free_shipping_threshold(self):
        totals = compute_totals([Line(25.0, 2)])
        assert totals.subtotal == 50.0
        assert totals.tax == 5.0
        assert totals.shipping == 10.0
        assert totals.discount == 0.0
        assert totals.total == 65.0

    def test_free_shipping_at_threshold(self):
        totals = compute_totals([Line(50.0, 2)])
        assert totals.subtotal == 100.0
        assert totals.shipping == 0.0
        assert totals.total == 110.0

    def test_percentage_discount_is_taken_from_subtotal(self):
        totals = compute_totals([Line(100.0, 1)], [AppliedDiscount("SAVE10", 10, DiscountType.PERCENTAGE)])
        assert totals.discount == 10.0
        assert totals.total == 100.0  # 100 + 10 tax + 0 shipping - 10

    def test_discounts_stack_additively(self):
        discounts = [
            AppliedDiscount("SAVE10", 10, DiscountType.PERCENTAGE),
            AppliedDiscount("SAVE20", 20, DiscountType.FIXED),
        ]
        totals = compute_totals([Line(100.0, 1)], discounts)
        assert totals.discount == 30.0
        assert totals.total == 80.0

    def test_total_never_goes_negative(self):
        totals = compute_totals([Line(5.0, 1)], [AppliedDiscount("BIG", 500, DiscountType.FIXED)])
        assert totals.discount == 500.0
        assert totals.total == 0.0

    def test_amounts_are_rounded_to_cents(self):
        totals = compute_totals([Line(19.99, 3)])
        assert totals.subtotal == 59.97
        assert totals.tax == 6.0
        assert totals.total == round(totals.subtotal + totals.tax + totals.shipping, 2)

    def test_is_deterministic(self):
        lines = [Line(12.5, 3), Line(7.25, 1)]
        discounts = [AppliedDiscount("WELCOME", 15, DiscountType.PERCENTAGE)]
        assert compute_totals(lines, discounts) == compute_totals(lines, discounts)

    def test_custom_policy(self):
        policy = PricingPolicy(tax_rate=0.2, free_shipping_threshold=30.0, flat_shipping_fee=4.5)
        totals = compute_totals([Line(10.0, 2)], policy=policy)
        assert totals.tax == 4.0
        assert totals.shipping == 4.5
        assert totals.total == 28.5


class TestAppliedDiscount:
    def test_round_trips_through_dict(self):
        discount = AppliedDiscount("SAVE20", 20, DiscountType.FIXED)
        assert AppliedDiscount.from_dict(discount.to_dict()) == discount

    def test_type_defaults_to_percentage(self):
        assert AppliedDiscount.from_dict({"code": "X", "magnitude": 5}).type == DiscountType.PERCENTAGE


class TestPricingPolicy:
    def test_defaults(self):
        policy = PricingPolicy()
        assert policy.tax_rate == 0.10
        assert policy.free_shipping_threshold == 100.0
        assert policy.flat_shipping_fee == 10.0
        assert policy.currency == "USD"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("STOREFRONT_TAX_RATE", "0.08")
        monkeypatch.setenv("STOREFRONT_FREE_SHIPPING_THRESHOLD", "75")
        monkeypatch.setenv("STOREFRONT_FLAT_SHIPPING_FEE", "5.99")
        monkeypatch.setenv("STOREFRONT_CURRENCY", "eur")

        policy = PricingPolicy.from_env()
        assert policy == PricingPolicy(
            tax_rate=0.08,
            free_shipping_threshold=75.0,
            flat_shipping_fee=5.99,
            currency="EUR",
        )

    def test_active_policy_can_be_swapped(self):
        custom = PricingPolicy(tax_rate=0.0)
        set_pricing_policy(custom)
        assert get_pricing_policy() is custom

        reset_pricing_policy()
        assert get_pricing_policy() == PricingPolicy()

    def test_policy_is_immutable(self):
        with pytest.raises(AttributeError):
            PricingPolicy().tax_rate = 0.5
