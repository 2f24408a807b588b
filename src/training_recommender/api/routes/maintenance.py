"""Maintenance API routes."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..deps import get_recommendation_engine
from ...services.recommendation import RecommendationEngine


router = APIRouter()


@router.post("/cache-cleanup")
async def cleanup_cache(
    engine: RecommendationEngine = Depends(get_recommendation_engine),
) -> Dict[str, Any]:
    """Purge expired recommendations now."""
    purged = await engine.cleanup_cache()
    stats = await engine.cache_stats()
    return {"purged": purged, "cache": stats.to_dict()}
