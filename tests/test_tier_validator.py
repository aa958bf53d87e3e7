"""
Tier admission tests: bounds, prices, overlap and warnings.
"""
import random
from decimal import Decimal

import pytest

from conftest import make_tier
from tier_pricing.engine import TierError, TierRejected, validate, parse_tier_fields
from tier_pricing.engine.bands import check_invariants


def fields(min_qty, max_qty=None, price="9.99"):
    return {'min_quantity': min_qty, 'max_quantity': max_qty, 'unit_price': price}


def test_accepts_well_formed_tier_on_empty_set():
    result = validate([], fields(10, 50, "9.99"))

    assert result.valid, result.message
    assert result.error is None
    assert result.tier.min_quantity == 10
    assert result.tier.max_quantity == 50
    assert result.tier.unit_price == Decimal("9.99")


def test_parses_form_strings():
    """Form input arrives as strings; an empty max means unbounded."""
    result = validate([], {'min_quantity': " 50 ", 'max_quantity': "", 'unit_price': "7.00"})

    assert result.valid, result.message
    assert result.tier.min_quantity == 50
    assert result.tier.max_quantity is None
    assert result.tier.unit_price == Decimal("7.00")


def test_accepts_integral_json_numbers():
    result = validate([], fields(10.0, 20, 8))
    assert result.valid, result.message
    assert result.tier.min_quantity == 10
    assert result.tier.unit_price == Decimal("8")


@pytest.mark.parametrize("candidate", [
    fields(0, None),
    fields(-5, 10),
    fields(10, 5),
    fields(10, 10),
    fields("1.5", 10),
    fields("ten", None),
    fields(10, "0"),
    fields(True, None),
], ids=["zero-min", "negative-min", "max-below-min", "max-equals-min", "fractional-min",
        "non-numeric-min", "zero-max", "bool-min"])
def test_rejects_invalid_bounds(candidate):
    result = validate([], candidate)
    assert not result.valid
    assert result.error == TierError.INVALID_BOUND, f"Expected INVALID_BOUND, got {result.error}: {result.message}"


@pytest.mark.parametrize("price", ["abc", "-0.01", "NaN", "Infinity", "1.2.3"])
def test_rejects_invalid_price(price):
    result = validate([], fields(1, 10, price))
    assert not result.valid
    assert result.error == TierError.INVALID_PRICE, f"Expected INVALID_PRICE for {price!r}, got {result.error}"


def test_zero_price_is_allowed():
    result = validate([], fields(1, 10, "0"))
    assert result.valid, result.message


@pytest.mark.parametrize("candidate", [
    {'max_quantity': 10, 'unit_price': "1.00"},
    fields("", 10),
    fields("   ", 10),
    fields(1, 10, None),
    fields(1, 10, ""),
])
def test_missing_required_fields_are_distinguishable(candidate):
    result = validate([], candidate)
    assert not result.valid
    assert result.error == TierError.MISSING_REQUIRED_FIELD
    assert "required" in result.message


def test_checks_run_in_order():
    """A bad bound is reported before a bad price, and both before overlap."""
    existing = [make_tier(1, 100, "5.00")]

    assert validate(existing, fields(0, None, "abc")).error == TierError.INVALID_BOUND
    assert validate(existing, fields(5, 10, "abc")).error == TierError.INVALID_PRICE
    assert validate(existing, fields(5, 10, "1.00")).error == TierError.OVERLAPPING_RANGE


def test_overlap_rejection():
    existing = [make_tier(10, 50, "9.99")]

    overlapping = validate(existing, fields(40, 60))
    assert not overlapping.valid
    assert overlapping.error == TierError.OVERLAPPING_RANGE
    assert "10-50" in overlapping.message

    adjacent = validate(existing, fields(51, 60))
    assert adjacent.valid, adjacent.message


def test_shared_boundary_quantity_overlaps():
    """Bounds are inclusive, so touching at 50 means both bands would claim 50."""
    existing = [make_tier(10, 50, "9.99")]
    assert validate(existing, fields(50, 60)).error == TierError.OVERLAPPING_RANGE
    assert validate(existing, fields(1, 10)).error == TierError.OVERLAPPING_RANGE


@pytest.mark.parametrize("candidate, expected_valid", [
    (fields(500, 600), False),
    (fields(1000, None), False),
    (fields(1, 99), True),
    (fields(50, None), False),
])
def test_unbounded_tiers_extend_to_infinity(candidate, expected_valid):
    existing = [make_tier(100, None, "5.00")]
    assert validate(existing, candidate).valid is expected_valid


def test_candidate_enclosing_existing_tier_overlaps():
    existing = [make_tier(20, 30, "5.00")]
    assert validate(existing, fields(1, 100)).error == TierError.OVERLAPPING_RANGE


def test_inactive_tiers_are_ignored():
    existing = [make_tier(10, 50, "9.99", active=False)]
    assert validate(existing, fields(20, 30)).valid


def test_no_overlap_closure():
    """Whatever sequence of candidates is offered, the admitted set stays disjoint."""
    rng = random.Random(20260115)
    admitted = []

    for _ in range(300):
        low = rng.randint(-2, 400)
        high = rng.choice([None, low + rng.randint(-3, 60)])
        result = validate(admitted, fields(low, high, f"{rng.randint(0, 2000) / 100:.2f}"))
        if result.valid:
            admitted.append(result.tier)

    assert len(admitted) > 1, "Sequence should admit several tiers"
    check_invariants(admitted)
    for qty in range(1, 500):
        matching = [t for t in admitted if t.matches(qty)]
        assert len(matching) <= 1, f"Quantity {qty} matches {len(matching)} tiers"


def test_warns_when_tier_price_exceeds_base_price():
    result = validate([], fields(1, 10, "15.00"), base_price=Decimal("12.00"))
    assert result.valid
    assert any("higher than the base price" in w for w in result.warnings)

    cheaper = validate([], fields(1, 10, "10.00"), base_price=Decimal("12.00"))
    assert cheaper.warnings == []


def test_warns_about_gaps_next_to_candidate():
    existing = [make_tier(1, 9, "10.00")]

    result = validate(existing, fields(20, 49, "8.50"))
    assert result.valid
    assert "Quantities 10-19 are not covered by any tier and use the base price" in result.warnings

    contiguous = validate(existing, fields(10, 49, "8.50"))
    assert contiguous.warnings == []


def test_parse_tier_fields_raises_on_bad_input():
    with pytest.raises(TierRejected) as exc_info:
        parse_tier_fields(fields(10, 5))
    assert exc_info.value.error == TierError.INVALID_BOUND

    tier = parse_tier_fields(fields("3", "", "1.25"))
    assert tier.label == "3+"
