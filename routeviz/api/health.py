from fastapi import APIRouter, Depends
from typing import Dict, Any

from .routes import get_aggregator, get_registry
from ..providers.base import SwapAggregator, TokenRegistry

router = APIRouter()


@router.get("/healthz")
async def health_check(
    aggregator: SwapAggregator = Depends(get_aggregator),
    registry: TokenRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    """Health check endpoint that verifies provider status"""

    provider_status = {
        aggregator.name: await aggregator.health_check(),
        registry.name: await registry.health_check(),
    }
    all_healthy = all(status["status"] == "healthy" for status in provider_status.values())

    return {
        "status": "healthy" if all_healthy else "degraded",
        "providers": provider_status,
    }
