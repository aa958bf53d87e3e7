"""
Tier Validator - Decides whether a candidate tier may join a product's tier set.

The existing active tiers are assumed valid. The candidate is raw input
(form strings, JSON numbers or None) and is parsed here before any check.

Checks run in a fixed order and stop at the first failure:
1. min_quantity present and an integer >= 1
2. max_quantity, when present, an integer > min_quantity
3. unit_price present, a finite decimal >= 0
4. no intersection with any existing active tier
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional, Union

from .bands import active_subset, bound_violation, find_gaps, find_overlap
from .errors import TierError, TierRejected
from .models import PricingTier, ValidationResult

TierFields = Mapping[str, Any]


class _FieldRejected(Exception):
    """Internal short-circuit carrying the rejection."""

    def __init__(self, error: TierError, message: str):
        super().__init__(message)
        self.error = error
        self.message = message


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _parse_quantity(value: Any, label: str) -> int:
    """Parse a form value into an int, or reject with INVALID_BOUND."""
    if isinstance(value, bool):
        raise _FieldRejected(TierError.INVALID_BOUND, f"{label} must be a whole number")
    if isinstance(value, int):
        return value
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise _FieldRejected(TierError.INVALID_BOUND, f"{label} must be a whole number (got {value!r})")
    if not number.is_finite() or number != number.to_integral_value():
        raise _FieldRejected(TierError.INVALID_BOUND, f"{label} must be a whole number (got {value!r})")
    return int(number)


def _parse_price(value: Any) -> Decimal:
    """Parse a form value into a non-negative Decimal, or reject with INVALID_PRICE."""
    if isinstance(value, bool):
        raise _FieldRejected(TierError.INVALID_PRICE, "Unit price must be a number")
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise _FieldRejected(TierError.INVALID_PRICE, f"Unit price must be a number (got {value!r})")
    if not price.is_finite():
        raise _FieldRejected(TierError.INVALID_PRICE, f"Unit price must be a finite number (got {value!r})")
    if price < 0:
        raise _FieldRejected(TierError.INVALID_PRICE, f"Unit price cannot be negative (got {price})")
    return price


def _raw_fields(candidate: Union[TierFields, PricingTier]) -> TierFields:
    if isinstance(candidate, PricingTier):
        return {
            'min_quantity': candidate.min_quantity,
            'max_quantity': candidate.max_quantity,
            'unit_price': candidate.unit_price,
        }
    return candidate


def _parse(fields: TierFields) -> PricingTier:
    """Checks 1-3. Raises _FieldRejected on the first failure."""
    raw_min = fields.get('min_quantity')
    if _is_blank(raw_min):
        raise _FieldRejected(TierError.MISSING_REQUIRED_FIELD, "Minimum quantity is required")
    min_quantity = _parse_quantity(raw_min, "Minimum quantity")
    problem = bound_violation(min_quantity, None)
    if problem:
        raise _FieldRejected(TierError.INVALID_BOUND, problem)

    raw_max = fields.get('max_quantity')
    max_quantity = None
    if not _is_blank(raw_max):
        max_quantity = _parse_quantity(raw_max, "Maximum quantity")
        problem = bound_violation(min_quantity, max_quantity)
        if problem:
            raise _FieldRejected(TierError.INVALID_BOUND, problem)

    raw_price = fields.get('unit_price')
    if _is_blank(raw_price):
        raise _FieldRejected(TierError.MISSING_REQUIRED_FIELD, "Unit price is required")
    unit_price = _parse_price(raw_price)

    return PricingTier(
        min_quantity=min_quantity,
        max_quantity=max_quantity,
        unit_price=unit_price,
    )


def parse_tier_fields(candidate: Union[TierFields, PricingTier]) -> PricingTier:
    """
    Parse raw tier fields into a PricingTier without checking overlap.

    Raises TierRejected if a bound or the price is missing or malformed.
    """
    try:
        return _parse(_raw_fields(candidate))
    except _FieldRejected as e:
        raise TierRejected(ValidationResult.rejected(e.error, e.message))


def validate(
    existing_active_tiers: Iterable[PricingTier],
    candidate: Union[TierFields, PricingTier],
    base_price: Optional[Decimal] = None
) -> ValidationResult:
    """
    Validate a candidate tier against a product's current active tiers.

    Args:
        existing_active_tiers: The product's tiers; inactive ones are ignored
        candidate: Raw fields (min_quantity, max_quantity, unit_price) or a PricingTier
        base_price: Product base price, only used for warnings

    Returns:
        ValidationResult with the parsed tier on success, or the first
        rejection reason
    """
    existing = active_subset(existing_active_tiers)

    try:
        tier = _parse(_raw_fields(candidate))
    except _FieldRejected as e:
        return ValidationResult.rejected(e.error, e.message)

    conflict = find_overlap(existing, tier.min_quantity, tier.max_quantity)
    if conflict is not None:
        return ValidationResult.rejected(
            TierError.OVERLAPPING_RANGE,
            f"Quantity range {tier.label} overlaps existing tier {conflict.label}"
        )

    result = ValidationResult.ok(tier)

    if base_price is not None and tier.unit_price > base_price:
        result.warnings.append(
            f"Tier price {tier.unit_price} is higher than the base price {base_price}"
        )

    for start, end in find_gaps(existing + [tier]):
        touches_candidate = end == tier.min_quantity - 1 or (
            tier.max_quantity is not None and start == tier.max_quantity + 1
        )
        if touches_candidate:
            span = str(start) if start == end else f"{start}-{end}"
            result.warnings.append(f"Quantities {span} are not covered by any tier and use the base price")

    return result
