"""
Price Resolver - Picks the unit price for an order quantity.

Resolution order:
1. Take the active tiers, sorted ascending by min_quantity
2. First tier with min_quantity <= quantity <= max_quantity (or unbounded) wins
3. No match falls back to the product base price

Bands are disjoint by construction, so the first match is the only match.
"""
from decimal import Decimal
from typing import Iterable, Optional

from .bands import check_invariants
from .models import PricingTier


def check_quantity(quantity: int) -> None:
    """Raise ValueError unless quantity is an int >= 1."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValueError(f"Quantity must be an integer (got {quantity!r})")
    if quantity < 1:
        raise ValueError(f"Quantity must be at least 1 (got {quantity})")


def find_tier(active_tiers: Iterable[PricingTier], quantity: int) -> Optional[PricingTier]:
    """
    Return the tier whose band contains quantity, or None.

    Raises ValueError for a quantity below 1 and TierInvariantError if the
    active tiers are malformed or overlap.
    """
    check_quantity(quantity)
    for tier in check_invariants(active_tiers):
        if tier.matches(quantity):
            return tier
    return None


def resolve(active_tiers: Iterable[PricingTier], base_price: Decimal, quantity: int) -> Decimal:
    """Unit price for quantity, falling back to base_price when no band matches."""
    tier = find_tier(active_tiers, quantity)
    if tier is None:
        return base_price
    return tier.unit_price
