import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ..config.log_setup import setup_logging
from ..engine.errors import TierInvariantError
from ..engine.models import QuoteRequest
from ..engine.pricing_engine import PricingEngine
from ..services.tier_service import TierService
from .state import get_engine, get_tier_service
from .tiers_api import router as tiers_router

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    LOGGER.info("Tier Pricing API starting")
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Tier Pricing API",
    description="Quantity-based pricing tiers for the storefront catalog and chat bot",
    version="1.0.0"
)

# Enable CORS for the admin dashboard
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include tier management API
app.include_router(tiers_router)


class CalcRequest(BaseModel):
    items: Dict[str, int]
    customer_ref: Optional[str] = None


@app.get("/")
async def root():
    return {"status": "online", "message": "Tier Pricing API Active"}


@app.post("/calculate")
async def calculate_quote(req: CalcRequest, engine: PricingEngine = Depends(get_engine)):
    try:
        result = engine.calculate(QuoteRequest(items=req.items, customer_ref=req.customer_ref))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TierInvariantError:
        LOGGER.critical("Stored tiers violate the band invariants", exc_info=True)
        raise HTTPException(status_code=500, detail="Pricing tiers are inconsistent; contact an administrator")
    return jsonable_encoder(result, custom_encoder={Decimal: str})


@app.get("/products/{product_id}/price")
async def get_price(
    product_id: str,
    quantity: int = Query(..., ge=1),
    engine: PricingEngine = Depends(get_engine),
):
    try:
        result = engine.calculate(QuoteRequest(items={product_id: quantity}))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TierInvariantError:
        LOGGER.critical(f"Stored tiers for product {product_id} violate the band invariants", exc_info=True)
        raise HTTPException(status_code=500, detail="Pricing tiers are inconsistent; contact an administrator")

    if not result.lines:
        raise HTTPException(status_code=404, detail=f"Product '{product_id}' not found")

    line = result.lines[0]
    return jsonable_encoder({
        "product_id": line.product_id,
        "quantity": line.quantity,
        "unit_price": line.unit_price,
        "total": line.extended_price,
        "source": line.source,
        "tier_id": line.tier_id,
        "tier_range": line.tier_range,
        "warnings": line.warnings,
    }, custom_encoder={Decimal: str})


@app.get("/system/status")
async def get_status(
    engine: PricingEngine = Depends(get_engine),
    service: TierService = Depends(get_tier_service),
):
    settings = engine.settings
    stats = service.get_stats()
    return {
        "engine_active": True,
        "products_loaded": len(engine.catalog),
        "tiers_total": stats["total"],
        "tiers_active": stats["active"],
        "catalog_last_modified": settings.products_csv.stat().st_mtime if settings.products_csv.exists() else None
    }
