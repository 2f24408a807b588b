"""Recommendation API routes."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..deps import get_recommendation_engine
from ...models.recommendation import RecommendationRequest
from ...services.recommendation import RecommendationEngine


router = APIRouter()


@router.post("")
async def create_recommendation(
    request: RecommendationRequest,
    engine: RecommendationEngine = Depends(get_recommendation_engine),
) -> Dict[str, Any]:
    """Recommend the training stress for a user's next workout."""
    recommendation = await engine.get_recommendation(request)
    return recommendation.to_dict()
