"""
Pricing Engine - Quotes order lines from the catalog and the tier store.

For each line:
1. Look up the product and its base price in the catalog
2. Load the product's active tiers from the tier store
3. Resolve the unit price (tier price, or base price when no band matches)
4. Extend by quantity, recording a trace and any warnings
"""
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Optional

import pandas as pd

from ..config.settings import get_settings, Settings
from .models import Product, QuoteRequest, QuoteResult, LineItem
from .price_resolver import check_quantity, find_tier

if TYPE_CHECKING:
    from ..services.tier_service import TierService

REQUIRED_COLUMNS = ('product_id', 'name', 'price')


def _optional_int(value: str) -> Optional[int]:
    value = str(value).strip()
    if not value:
        return None
    return int(value)


def _parse_base_price(product_id: str, value: str) -> Decimal:
    try:
        price = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"products.csv: product {product_id} has an invalid price {value!r}")
    if not price.is_finite() or price < 0:
        raise ValueError(f"products.csv: product {product_id} has an invalid price {value!r}")
    return price


class PricingEngine:
    """
    Quote engine over the product catalog and per-product tier sets.

    The catalog is read once with pandas; call reload_data() after the
    products file changes. Tiers are read from the tier store on every
    quote so admin edits apply immediately.
    """

    def __init__(self, settings: Optional[Settings] = None, tier_service: Optional['TierService'] = None):
        """Initialize engine with catalog and tier store."""
        self.settings = settings or get_settings()
        if tier_service is None:
            from ..services.tier_service import TierService
            tier_service = TierService(self.settings.tiers_dir)
        self.tier_service = tier_service

        catalog_path = self.settings.products_csv
        if not catalog_path.exists():
            raise FileNotFoundError(
                f"products.csv not found at {catalog_path}. "
                "Set TIER_PRICING_DATA_DIR or add a catalog file."
            )

        catalog = pd.read_csv(catalog_path, dtype=str, keep_default_na=False)
        missing = [c for c in REQUIRED_COLUMNS if c not in catalog.columns]
        if missing:
            raise ValueError(f"products.csv is missing columns: {', '.join(missing)}")

        # Normalize and keep the first row for duplicated ids
        for col in catalog.columns:
            catalog[col] = catalog[col].astype(str).str.strip()
        catalog = catalog[catalog['product_id'] != '']
        catalog = catalog.drop_duplicates(subset='product_id', keep='first')

        for product_id, raw_price in zip(catalog['product_id'], catalog['price']):
            _parse_base_price(product_id, raw_price)

        self.catalog = catalog.set_index('product_id')

    def reload_data(self):
        """Reload the catalog from disk."""
        self.__init__(self.settings, self.tier_service)

    def get_product(self, product_id: str) -> Optional[Product]:
        """Catalog row for a product, or None if unknown."""
        product_id = str(product_id).strip()
        if product_id not in self.catalog.index:
            return None

        row = self.catalog.loc[product_id]
        return Product(
            product_id=product_id,
            name=row['name'] or "N/A",
            price=_parse_base_price(product_id, row['price']),
            currency_code=row.get('currency_code') or "USD",
            min_order_quantity=_optional_int(row.get('min_order_quantity', '')) or 1,
            max_order_quantity=_optional_int(row.get('max_order_quantity', '')),
            is_active=str(row.get('is_active', 'true')).lower() != 'false',
        )

    def get_base_price(self, product_id: str) -> Decimal:
        """Base price of a product. Raises KeyError if unknown."""
        product = self.get_product(product_id)
        if product is None:
            raise KeyError(f"Product '{product_id}' not found in catalog")
        return product.price

    def get_unit_price(self, product_id: str, quantity: int) -> Decimal:
        """Unit price for a product at a given quantity."""
        line = self._calculate_line(product_id, quantity)
        if line is None:
            raise KeyError(f"Product '{product_id}' not found in catalog")
        return line.unit_price

    def calculate(self, request: QuoteRequest) -> QuoteResult:
        """
        Calculate a quote with full traceability.

        Args:
            request: QuoteRequest with product_id → quantity

        Returns:
            QuoteResult with lines, total and warnings

        Raises:
            ValueError: if any quantity is not an integer >= 1
        """
        for product_id, qty in request.items.items():
            try:
                check_quantity(qty)
            except ValueError as e:
                raise ValueError(f"Product {product_id}: {e}")

        result = QuoteResult(total=Decimal("0"), lines=[], customer_ref=request.customer_ref)

        for product_id, qty in request.items.items():
            line = self._calculate_line(product_id, qty)
            if line is None:
                result.add_warning(f"Product {product_id} not found in catalog")
                continue

            result.lines.append(line)
            result.total += line.extended_price
            for warning in line.warnings:
                result.add_warning(warning)

        return result

    def _calculate_line(self, product_id: str, qty: int) -> Optional[LineItem]:
        """Calculate a single line item with trace."""
        check_quantity(qty)
        product = self.get_product(product_id)
        if product is None:
            return None

        line = LineItem(
            product_id=product.product_id,
            name=product.name,
            quantity=qty,
            unit_price=product.price,
            extended_price=Decimal("0"),
            source="Base",
        )
        line.add_trace("Product Lookup", "Found product in catalog", product.product_id)

        if not product.is_active:
            line.add_warning(f"Product {product.product_id} is inactive")
        if qty < product.min_order_quantity:
            line.add_warning(
                f"Quantity {qty} is below the minimum order of {product.min_order_quantity} for {product.product_id}"
            )
        if product.max_order_quantity is not None and qty > product.max_order_quantity:
            line.add_warning(
                f"Quantity {qty} exceeds the maximum order of {product.max_order_quantity} for {product.product_id}"
            )

        tiers = self.tier_service.list_tiers(product.product_id, include_inactive=False)
        line.add_trace("Tier Lookup", "Active pricing tiers", str(len(tiers)))

        tier = find_tier(tiers, qty)
        if tier is not None:
            line.unit_price = tier.unit_price
            line.source = "Tier"
            line.tier_id = tier.tier_id
            line.tier_range = tier.label
            line.add_trace("Price Resolution", f"Quantity {qty} falls in tier {tier.label}", f"{tier.unit_price}")
        else:
            line.add_trace("Price Resolution", f"No tier covers quantity {qty}, using base price", f"{product.price}")

        line.extended_price = line.unit_price * qty
        line.add_trace("Extension", f"Quantity {qty} × {line.unit_price}", f"{line.extended_price}")

        return line
