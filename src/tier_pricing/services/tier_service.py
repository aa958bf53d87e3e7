"""
Tier Service - CRUD operations for product pricing tiers.

Each product owns one CSV file under the tiers directory. Every write goes
through the tier validator and happens under that product's lock, so two
concurrent admissions can never both pass against the same stale snapshot.
"""
import csv
import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterator, Optional
from contextlib import contextmanager
from urllib.parse import quote, unquote

from ..engine.bands import active_subset, sort_tiers
from ..engine.errors import TierRejected
from ..engine.models import PricingTier, ValidationResult
from ..engine.tier_validator import TierFields, validate

LOGGER = logging.getLogger(__name__)

TIER_FILE_SUFFIX = '.csv'


def tier_file_name(product_id: str) -> str:
    """File name for a product's tiers; anything but letters, digits and '_-~' is percent-encoded."""
    product_id = str(product_id)
    if not product_id.strip():
        raise ValueError("Product id is required")
    # A bare '.' or '..' would still be a path component
    return quote(product_id, safe='').replace('.', '%2E') + TIER_FILE_SUFFIX


def product_id_from_file_name(name: str) -> str:
    return unquote(name[:-len(TIER_FILE_SUFFIX)])


def tier_to_csv_row(tier: PricingTier) -> dict:
    """Convert to CSV row format. An unbounded tier has an empty max cell."""
    return {
        'tier_id': tier.tier_id,
        'product_id': tier.product_id,
        'min_quantity': str(tier.min_quantity),
        'max_quantity': str(tier.max_quantity) if tier.max_quantity is not None else '',
        'unit_price': str(tier.unit_price),
        'active': 'true' if tier.active else 'false',
        'created_at': tier.created_at or '',
    }


def tier_from_csv_row(row: dict) -> PricingTier:
    """Create PricingTier from CSV row."""
    return PricingTier(
        tier_id=row.get('tier_id', ''),
        product_id=row.get('product_id', ''),
        min_quantity=int(row['min_quantity']),
        max_quantity=int(row['max_quantity']) if row.get('max_quantity') else None,
        unit_price=Decimal(row['unit_price']),
        active=row.get('active', 'true').lower() == 'true',
        created_at=row.get('created_at') or None,
    )


class TierService:
    """Service for managing per-product pricing tiers."""

    CSV_COLUMNS = [
        'tier_id', 'product_id', 'min_quantity', 'max_quantity',
        'unit_price', 'active', 'created_at'
    ]

    def __init__(self, tiers_dir: Path):
        self.tiers_dir = tiers_dir
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _tier_path(self, product_id: str) -> Path:
        return self.tiers_dir / tier_file_name(product_id)

    @contextmanager
    def _product_lock(self, product_id: str) -> Iterator[None]:
        """Hold the product's mutation lock for a read-validate-write cycle."""
        self._tier_path(product_id)
        with self._locks_guard:
            lock = self._locks.setdefault(product_id, threading.Lock())
        with lock:
            yield

    def list_tiers(self, product_id: str, include_inactive: bool = True) -> list[PricingTier]:
        """List a product's tiers, sorted by min_quantity."""
        path = self._tier_path(product_id)
        tiers = []
        if not path.exists():
            return tiers

        with open(path, 'r', encoding='utf-8', newline='') as f:
            reader = csv.DictReader(f)
            for row in reader:
                if not row.get('tier_id'):
                    continue
                tiers.append(tier_from_csv_row(row))

        if not include_inactive:
            tiers = active_subset(tiers)
        return sort_tiers(tiers)

    def get_tier(self, product_id: str, tier_id: str) -> Optional[PricingTier]:
        """Get a single tier by ID."""
        for tier in self.list_tiers(product_id):
            if tier.tier_id == tier_id:
                return tier
        return None

    def validate_tier(
        self,
        product_id: str,
        fields: TierFields,
        base_price: Optional[Decimal] = None
    ) -> ValidationResult:
        """Validate candidate fields against the product's active tiers without saving."""
        return validate(self.list_tiers(product_id, include_inactive=False), fields, base_price)

    def admit_tier(
        self,
        product_id: str,
        fields: TierFields,
        base_price: Optional[Decimal] = None
    ) -> ValidationResult:
        """
        Validate and store a new active tier.

        Returns the accepted ValidationResult: `tier` is the stored tier and
        `warnings` were computed against the same snapshot that was written.

        Raises:
            TierRejected: if the candidate fails validation
        """
        with self._product_lock(product_id):
            tiers = self.list_tiers(product_id)
            result = self._admit(product_id, tiers, fields, base_price)
            tiers.append(result.tier)
            self._write_tiers(product_id, tiers)

        created = result.tier
        LOGGER.info(f"Created tier {created.tier_id} ({created.label} @ {created.unit_price}) for product {product_id}")
        return result

    def create_tier(
        self,
        product_id: str,
        fields: TierFields,
        base_price: Optional[Decimal] = None
    ) -> PricingTier:
        """Validate and store a new active tier. Raises TierRejected on failure."""
        return self.admit_tier(product_id, fields, base_price).tier

    def replace_tier(
        self,
        product_id: str,
        tier_id: str,
        fields: TierFields,
        base_price: Optional[Decimal] = None
    ) -> PricingTier:
        """
        Edit a tier as delete + create under one lock hold.

        The new tier is validated against the set without the old one. On
        rejection nothing is written and the old tier stays in place.
        """
        with self._product_lock(product_id):
            tiers = self.list_tiers(product_id)
            remaining = [t for t in tiers if t.tier_id != tier_id]
            if len(remaining) == len(tiers):
                raise KeyError(f"Tier '{tier_id}' not found for product '{product_id}'")

            created = self._admit(product_id, remaining, fields, base_price).tier
            remaining.append(created)
            self._write_tiers(product_id, remaining)

        LOGGER.info(f"Replaced tier {tier_id} with {created.tier_id} ({created.label}) for product {product_id}")
        return created

    def delete_tier(self, product_id: str, tier_id: str) -> bool:
        """Delete a tier. Removing a band can never break the invariants."""
        with self._product_lock(product_id):
            tiers = self.list_tiers(product_id)
            remaining = [t for t in tiers if t.tier_id != tier_id]
            if len(remaining) == len(tiers):
                raise KeyError(f"Tier '{tier_id}' not found for product '{product_id}'")
            self._write_tiers(product_id, remaining)

        LOGGER.info(f"Deleted tier {tier_id} for product {product_id}")
        return True

    def set_active(self, product_id: str, tier_id: str, active: bool) -> PricingTier:
        """
        Activate or deactivate a tier.

        Deactivation always succeeds. Activation re-enters the active set, so
        it is validated like a new admission.
        """
        with self._product_lock(product_id):
            tiers = self.list_tiers(product_id)
            current = next((t for t in tiers if t.tier_id == tier_id), None)
            if current is None:
                raise KeyError(f"Tier '{tier_id}' not found for product '{product_id}'")
            if current.active == active:
                return current

            others = [t for t in tiers if t.tier_id != tier_id]
            if active:
                result = validate(others, current)
                if not result.valid:
                    LOGGER.warning(f"Refused to reactivate tier {tier_id} for product {product_id}: {result.message}")
                    raise TierRejected(result)

            updated = replace(current, active=active)
            others.append(updated)
            self._write_tiers(product_id, others)

        LOGGER.info(f"Tier {tier_id} for product {product_id} is now {'active' if active else 'inactive'}")
        return updated

    def _admit(
        self,
        product_id: str,
        tiers: list[PricingTier],
        fields: TierFields,
        base_price: Optional[Decimal]
    ) -> ValidationResult:
        """Validate against the snapshot and stamp identity on the parsed tier."""
        result = validate(tiers, fields, base_price)
        if not result.valid:
            LOGGER.info(f"Rejected tier for product {product_id}: {result.error.value} - {result.message}")
            raise TierRejected(result)

        for warning in result.warnings:
            LOGGER.warning(f"Product {product_id}: {warning}")

        parsed = result.tier
        result.tier = PricingTier(
            min_quantity=parsed.min_quantity,
            max_quantity=parsed.max_quantity,
            unit_price=parsed.unit_price,
            active=True,
            tier_id=uuid.uuid4().hex,
            product_id=product_id,
            created_at=datetime.now().isoformat(timespec='seconds'),
        )
        return result

    def _write_tiers(self, product_id: str, tiers: list[PricingTier]):
        """Write a product's tiers back to CSV."""
        path = self._tier_path(product_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=self.CSV_COLUMNS)
            writer.writeheader()
            for tier in sort_tiers(tiers):
                writer.writerow(tier_to_csv_row(tier))

    def list_product_ids(self) -> list[str]:
        """Products that have a tier file."""
        if not self.tiers_dir.exists():
            return []
        return sorted(product_id_from_file_name(p.name) for p in self.tiers_dir.glob('*' + TIER_FILE_SUFFIX))

    def get_stats(self) -> dict:
        """Get statistics about stored tiers."""
        total = 0
        active = 0
        unbounded = 0
        by_product = {}
        for product_id in self.list_product_ids():
            tiers = self.list_tiers(product_id)
            total += len(tiers)
            active += sum(1 for t in tiers if t.active)
            unbounded += sum(1 for t in tiers if t.active and t.max_quantity is None)
            by_product[product_id] = len(tiers)

        return {
            'total': total,
            'active': active,
            'inactive': total - active,
            'unbounded': unbounded,
            'by_product': by_product,
        }
