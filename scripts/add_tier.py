#!/usr/bin/env python
"""
Add a pricing tier to a product from the command line.

Usage:
    python scripts/add_tier.py COFFEE-1KG 100 "" 6.25
    (an empty max quantity means the tier is unbounded)
"""
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from tier_pricing.config.settings import get_settings
from tier_pricing.engine import PricingEngine, TierRejected


def main():
    if len(sys.argv) != 5:
        print(__doc__)
        sys.exit(2)

    product_id, min_qty, max_qty, price = sys.argv[1:]
    engine = PricingEngine(get_settings())

    product = engine.get_product(product_id)
    if product is None:
        print(f"❌ Product '{product_id}' not found in catalog")
        sys.exit(1)

    fields = {'min_quantity': min_qty, 'max_quantity': max_qty, 'unit_price': price}
    try:
        result = engine.tier_service.admit_tier(product_id, fields, base_price=product.price)
    except TierRejected as e:
        print(f"❌ {e.error.value}: {e.message}")
        sys.exit(1)

    created = result.tier
    print(f"✅ Created tier {created.label} @ {created.unit_price} ({created.tier_id})")
    for warning in result.warnings:
        print(f"  WARNING: {warning}")


if __name__ == "__main__":
    main()
