#!/usr/bin/env python
"""
Check every stored tier set against the band invariants.

Usage:
    python scripts/check_tiers.py
"""
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from tier_pricing.config.settings import get_settings
from tier_pricing.engine import PricingEngine, TierInvariantError
from tier_pricing.engine.bands import check_invariants, find_gaps


def main():
    print("=" * 60)
    print("PRICING TIER CHECK")
    print("=" * 60)
    print()

    engine = PricingEngine(get_settings())
    service = engine.tier_service
    failures = 0

    for product_id in service.list_product_ids():
        tiers = service.list_tiers(product_id)
        product = engine.get_product(product_id)
        try:
            ordered = check_invariants(tiers)
        except TierInvariantError as e:
            failures += 1
            print(f"❌ {product_id}: {e}")
            continue

        bands = ", ".join(f"{t.label} @ {t.unit_price}" for t in ordered) or "no active tiers"
        print(f"✅ {product_id}: {bands}")
        if product is None:
            print(f"  WARNING: {product_id} has tiers but is not in the catalog")
        for start, end in find_gaps(ordered):
            print(f"  NOTE: quantities {start}-{end} use the base price")

    print()
    if failures:
        print(f"❌ {failures} product(s) with invalid tiers")
        sys.exit(1)
    print("✅ All tier sets are valid")


if __name__ == "__main__":
    main()
