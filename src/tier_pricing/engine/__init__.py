"""Engine subpackage - tier validation, price resolution and quotes."""
from .errors import TierError, TierRejected, TierInvariantError
from .models import PricingTier, ValidationResult, Product, QuoteRequest, QuoteResult, LineItem
from .tier_validator import validate, parse_tier_fields
from .price_resolver import resolve, find_tier
from .pricing_engine import PricingEngine

__all__ = [
    'TierError', 'TierRejected', 'TierInvariantError',
    'PricingTier', 'ValidationResult', 'Product', 'QuoteRequest', 'QuoteResult', 'LineItem',
    'validate', 'parse_tier_fields', 'resolve', 'find_tier',
    'PricingEngine',
]
