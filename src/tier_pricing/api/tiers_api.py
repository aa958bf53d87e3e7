"""
Tiers API - FastAPI router for pricing tier administration.
"""
from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import AliasChoices, BaseModel, Field

from ..engine.errors import TierError, TierRejected
from ..engine.models import PricingTier, Product
from ..engine.pricing_engine import PricingEngine
from ..services.tier_service import TierService
from .state import get_engine, get_tier_service

router = APIRouter(prefix="/api", tags=["pricing-tiers"])

# Raw JSON values go to the validator unconverted, so `true` is not coerced to 1
RawNumber = Any


# Pydantic models for API
class TierCreate(BaseModel):
    """Request model for creating or replacing a tier."""
    min_quantity: RawNumber = Field(default=None, validation_alias=AliasChoices("min_quantity", "minQuantity"))
    max_quantity: RawNumber = Field(default=None, validation_alias=AliasChoices("max_quantity", "maxQuantity"))
    unit_price: RawNumber = Field(default=None, validation_alias=AliasChoices("unit_price", "unitPrice", "price"))


class ActiveUpdate(BaseModel):
    """Request model for activating or deactivating a tier."""
    active: bool


class TierResponse(BaseModel):
    """Response model for a tier."""
    tier_id: str
    product_id: str
    min_quantity: int
    max_quantity: Optional[int]
    unit_price: Decimal
    active: bool
    created_at: Optional[str]
    label: str
    warnings: list[str] = []

    @classmethod
    def from_tier(cls, tier: PricingTier, warnings: Optional[list[str]] = None) -> 'TierResponse':
        return cls(
            tier_id=tier.tier_id,
            product_id=tier.product_id,
            min_quantity=tier.min_quantity,
            max_quantity=tier.max_quantity,
            unit_price=tier.unit_price,
            active=tier.active,
            created_at=tier.created_at,
            label=tier.label,
            warnings=warnings or [],
        )


class ValidationResponse(BaseModel):
    """Response model for validation."""
    valid: bool
    error: Optional[TierError]
    message: str
    warnings: list[str]


def _require_product(engine: PricingEngine, product_id: str) -> Product:
    product = engine.get_product(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product '{product_id}' not found")
    return product


def _rejection(e: TierRejected) -> HTTPException:
    """Map a rejected tier to an HTTP error, keeping the message verbatim."""
    status = 409 if e.error == TierError.OVERLAPPING_RANGE else 400
    return HTTPException(status_code=status, detail={"error": e.error.value, "message": e.message})


# Endpoints

@router.get("/pricing-tiers/stats")
async def get_stats(service: TierService = Depends(get_tier_service)):
    """Get tier statistics."""
    return service.get_stats()


@router.get("/products/{product_id}/pricing-tiers", response_model=list[TierResponse])
async def list_tiers(
    product_id: str,
    include_inactive: bool = True,
    engine: PricingEngine = Depends(get_engine),
    service: TierService = Depends(get_tier_service),
):
    """List a product's pricing tiers, ordered by minimum quantity."""
    _require_product(engine, product_id)
    try:
        tiers = service.list_tiers(product_id, include_inactive=include_inactive)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [TierResponse.from_tier(t) for t in tiers]


@router.post("/products/{product_id}/pricing-tiers", response_model=TierResponse, status_code=201)
async def create_tier(
    product_id: str,
    tier_data: TierCreate,
    engine: PricingEngine = Depends(get_engine),
    service: TierService = Depends(get_tier_service),
):
    """Create a new pricing tier."""
    product = _require_product(engine, product_id)
    fields = tier_data.model_dump()

    try:
        result = service.admit_tier(product_id, fields, base_price=product.price)
    except TierRejected as e:
        raise _rejection(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return TierResponse.from_tier(result.tier, result.warnings)


@router.post("/products/{product_id}/pricing-tiers/validate", response_model=ValidationResponse)
async def validate_tier(
    product_id: str,
    tier_data: TierCreate,
    engine: PricingEngine = Depends(get_engine),
    service: TierService = Depends(get_tier_service),
):
    """Validate a tier without saving."""
    product = _require_product(engine, product_id)
    try:
        result = service.validate_tier(product_id, tier_data.model_dump(), base_price=product.price)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ValidationResponse(
        valid=result.valid,
        error=result.error,
        message=result.message,
        warnings=result.warnings,
    )


@router.put("/products/{product_id}/pricing-tiers/{tier_id}", response_model=TierResponse)
async def replace_tier(
    product_id: str,
    tier_id: str,
    tier_data: TierCreate,
    engine: PricingEngine = Depends(get_engine),
    service: TierService = Depends(get_tier_service),
):
    """Replace a tier (delete + create). The old tier survives a rejection."""
    product = _require_product(engine, product_id)
    try:
        replaced = service.replace_tier(product_id, tier_id, tier_data.model_dump(), base_price=product.price)
    except TierRejected as e:
        raise _rejection(e)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TierResponse.from_tier(replaced)


@router.patch("/products/{product_id}/pricing-tiers/{tier_id}/active", response_model=TierResponse)
async def set_tier_active(
    product_id: str,
    tier_id: str,
    update: ActiveUpdate,
    engine: PricingEngine = Depends(get_engine),
    service: TierService = Depends(get_tier_service),
):
    """Activate or deactivate a tier."""
    _require_product(engine, product_id)
    try:
        tier = service.set_active(product_id, tier_id, update.active)
    except TierRejected as e:
        raise _rejection(e)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return TierResponse.from_tier(tier)


@router.delete("/products/{product_id}/pricing-tiers/{tier_id}")
async def delete_tier(
    product_id: str,
    tier_id: str,
    engine: PricingEngine = Depends(get_engine),
    service: TierService = Depends(get_tier_service),
):
    """Delete a tier."""
    _require_product(engine, product_id)
    try:
        service.delete_tier(product_id, tier_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "message": f"Tier '{tier_id}' deleted"}
