"""
Shared service instances for the API, created on first use.

Routers receive these through FastAPI dependencies so tests can swap them
with app.dependency_overrides.
"""
from typing import Optional

from ..config.settings import get_settings
from ..engine.pricing_engine import PricingEngine
from ..services.tier_service import TierService

_tier_service: Optional[TierService] = None
_engine: Optional[PricingEngine] = None


def get_tier_service() -> TierService:
    """Get the global tier store."""
    global _tier_service
    if _tier_service is None:
        _tier_service = TierService(get_settings().tiers_dir)
    return _tier_service


def get_engine() -> PricingEngine:
    """Get the global pricing engine, sharing the tier store."""
    global _engine
    if _engine is None:
        _engine = PricingEngine(get_settings(), get_tier_service())
    return _engine
