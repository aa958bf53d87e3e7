"""
Data models for the tier pricing engine.

Uses dataclasses for structured, type-safe data representation.
Money is always Decimal; quantities are always int.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from .errors import TierError


@dataclass(frozen=True)
class PricingTier:
    """
    A quantity band with its unit price.

    Both bounds are inclusive. max_quantity=None means the band is unbounded
    above. Tiers are never edited in place; an edit is delete + create.
    """
    min_quantity: int
    max_quantity: Optional[int]
    unit_price: Decimal
    active: bool = True
    tier_id: str = ""
    product_id: str = ""
    created_at: Optional[str] = None

    def matches(self, quantity: int) -> bool:
        if quantity < self.min_quantity:
            return False
        if self.max_quantity is None:
            return True
        return quantity <= self.max_quantity

    @property
    def label(self) -> str:
        """Human-readable range, e.g. "10-50" or "100+"."""
        if self.max_quantity is None:
            return f"{self.min_quantity}+"
        return f"{self.min_quantity}-{self.max_quantity}"


@dataclass
class ValidationResult:
    """Outcome of validating a candidate tier."""
    valid: bool
    error: Optional[TierError] = None
    message: str = ""
    tier: Optional[PricingTier] = None
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls, tier: PricingTier) -> 'ValidationResult':
        return cls(valid=True, tier=tier, message="Tier accepted")

    @classmethod
    def rejected(cls, error: TierError, message: str) -> 'ValidationResult':
        return cls(valid=False, error=error, message=message)


@dataclass
class Product:
    """A catalog product as seen by the pricing engine."""
    product_id: str
    name: str
    price: Decimal
    currency_code: str = "USD"
    min_order_quantity: int = 1
    max_order_quantity: Optional[int] = None
    is_active: bool = True


@dataclass
class TraceStep:
    """A single step in the price resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class LineItem:
    """A single priced line of a quote."""
    product_id: str
    name: str
    quantity: int
    unit_price: Decimal
    extended_price: Decimal
    source: str  # "Tier" or "Base"
    tier_id: Optional[str] = None
    tier_range: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace for this line item."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        """Add a warning for this line item."""
        self.warnings.append(warning)

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)


@dataclass
class QuoteRequest:
    """A quote request: product_id → quantity."""
    items: dict[str, int]
    customer_ref: Optional[str] = None  # chat id or order reference, echoed back


@dataclass
class QuoteResult:
    """Complete result of a quote calculation."""
    total: Decimal
    lines: list[LineItem]
    customer_ref: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    def add_warning(self, warning: str):
        """Add a result-level warning."""
        if warning not in self.warnings:
            self.warnings.append(warning)
