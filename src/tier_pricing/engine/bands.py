"""
Band arithmetic shared by the validator and the resolver.

Every notion of "active", "ordered", "well-formed" and "overlapping" used
anywhere in the engine is defined here, once.
"""
import math
from typing import Iterable, Optional

from .errors import TierInvariantError
from .models import PricingTier


def upper_bound(max_quantity: Optional[int]) -> float:
    """Inclusive upper bound, with an absent maximum as +inf."""
    return math.inf if max_quantity is None else max_quantity


def active_subset(tiers: Iterable[PricingTier]) -> list[PricingTier]:
    """Tiers that take part in validation and resolution."""
    return [t for t in tiers if t.active]


def sort_tiers(tiers: Iterable[PricingTier]) -> list[PricingTier]:
    """Ascending by min_quantity (stable)."""
    return sorted(tiers, key=lambda t: t.min_quantity)


def bound_violation(min_quantity: int, max_quantity: Optional[int]) -> Optional[str]:
    """Return why the bounds are malformed, or None if they are fine."""
    if min_quantity < 1:
        return f"Minimum quantity must be at least 1 (got {min_quantity})"
    if max_quantity is not None and max_quantity <= min_quantity:
        return (
            f"Maximum quantity must be greater than minimum quantity "
            f"(got {min_quantity}-{max_quantity})"
        )
    return None


def ranges_overlap(
    a_min: int, a_max: Optional[int],
    b_min: int, b_max: Optional[int]
) -> bool:
    """Closed-interval intersection test; absent maxima extend to +inf."""
    return a_min <= upper_bound(b_max) and b_min <= upper_bound(a_max)


def find_overlap(
    tiers: Iterable[PricingTier],
    min_quantity: int,
    max_quantity: Optional[int]
) -> Optional[PricingTier]:
    """First active tier (by min_quantity) whose range intersects the given one."""
    for tier in sort_tiers(active_subset(tiers)):
        if ranges_overlap(tier.min_quantity, tier.max_quantity, min_quantity, max_quantity):
            return tier
    return None


def find_gaps(tiers: Iterable[PricingTier]) -> list[tuple[int, int]]:
    """
    Quantity ranges not covered by any active tier, below the highest band.

    Quantities in a gap resolve to the base price. Returns inclusive
    (start, end) pairs; the open range above a bounded last tier is not
    reported since falling back above the top band is the usual setup.
    """
    gaps = []
    next_uncovered = 1
    for tier in sort_tiers(active_subset(tiers)):
        if tier.min_quantity > next_uncovered:
            gaps.append((next_uncovered, tier.min_quantity - 1))
        if tier.max_quantity is None:
            break
        next_uncovered = max(next_uncovered, tier.max_quantity + 1)
    return gaps


def check_invariants(tiers: Iterable[PricingTier]) -> list[PricingTier]:
    """
    Verify bounds and disjointness of the active subset.

    Returns the active tiers sorted by min_quantity. Raises
    TierInvariantError on the first breach.
    """
    ordered = sort_tiers(active_subset(tiers))
    previous: Optional[PricingTier] = None
    for tier in ordered:
        problem = bound_violation(tier.min_quantity, tier.max_quantity)
        if problem:
            raise TierInvariantError(f"Tier {tier.tier_id or tier.label}: {problem}")
        if previous is not None and tier.min_quantity <= upper_bound(previous.max_quantity):
            raise TierInvariantError(
                f"Tiers {previous.label} and {tier.label} overlap"
            )
        previous = tier
    return ordered
