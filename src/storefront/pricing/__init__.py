"""Pricing policy factory.

Provides get_pricing_policy() / set_pricing_policy() so the active tax and
shipping policy can be read from the environment in production and pinned
in tests.
"""

from storefront.pricing.engine import PricingPolicy

_current_policy: PricingPolicy | None = None


def get_pricing_policy() -> PricingPolicy:
    """Return the active pricing policy. Defaults to the environment-derived policy."""
    global _current_policy
    if _current_policy is None:
        _current_policy = PricingPolicy.from_env()
    return _current_policy


def set_pricing_policy(policy: PricingPolicy) -> None:
    """Override the active pricing policy (useful for tests)."""
    global _current_policy
    _current_policy = policy


def reset_pricing_policy() -> None:
    """Reset to the environment-derived policy."""
    global _current_policy
    _current_policy = None
