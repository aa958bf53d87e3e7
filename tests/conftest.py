import os
import sys
from decimal import Decimal

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from tier_pricing.config.settings import Settings
from tier_pricing.engine.models import PricingTier
from tier_pricing.services.tier_service import TierService

PRODUCTS_CSV = """product_id,name,price,currency_code,min_order_quantity,max_order_quantity,is_active
COFFEE,Espresso Beans 1kg,12.00,USD,1,,true
TEA,Green Tea 250g,6.50,USD,1,200,true
FILTER,Paper Filters,3.25,USD,5,,false
"""


def make_tier(min_qty, max_qty, price, active=True, tier_id=""):
    """Build a PricingTier from plain values."""
    return PricingTier(
        min_quantity=min_qty,
        max_quantity=max_qty,
        unit_price=Decimal(str(price)),
        active=active,
        tier_id=tier_id,
    )


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway data directory with a small catalog."""
    data_dir = tmp_path / "data"
    (data_dir / "tiers").mkdir(parents=True)
    (data_dir / "products.csv").write_text(PRODUCTS_CSV, encoding="utf-8")
    return Settings.load(project_root=tmp_path, data_dir=data_dir)


@pytest.fixture
def tier_service(settings):
    return TierService(settings.tiers_dir)
