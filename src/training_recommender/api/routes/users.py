"""Per-user training-load and model API routes."""

from datetime import date, timedelta
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from ..deps import get_model_registry, get_model_trainer, get_recommendation_engine
from ...exceptions import ValidationError
from ...services.model_registry import ModelRegistry
from ...services.model_training import ModelTrainer
from ...services.recommendation import RecommendationEngine


router = APIRouter()

DEFAULT_SERIES_DAYS = 42
MAX_SERIES_DAYS = 730


@router.get("/{user_id}/training-load")
async def get_training_load(
    user_id: str,
    start: Optional[date] = Query(default=None, description="First day (default: end - 42 days)"),
    end: Optional[date] = Query(default=None, description="Last day (default: today)"),
    engine: RecommendationEngine = Depends(get_recommendation_engine),
) -> Dict[str, Any]:
    """Daily chronic load, acute load and balance for a date range."""
    end = end or date.today()
    start = start or end - timedelta(days=DEFAULT_SERIES_DAYS)
    if start > end:
        raise ValidationError("start must not be after end", field="start")
    if (end - start).days > MAX_SERIES_DAYS:
        raise ValidationError(f"Date range cannot exceed {MAX_SERIES_DAYS} days", field="start")

    states = await engine.get_load_series(user_id, start, end)
    return {
        "user_id": user_id,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "series": [state.to_dict() for state in states],
    }


@router.post("/{user_id}/models/train")
async def train_models(
    user_id: str,
    as_of: Optional[date] = Query(default=None, description="Last day of training history"),
    trainer: ModelTrainer = Depends(get_model_trainer),
    engine: RecommendationEngine = Depends(get_recommendation_engine),
) -> Dict[str, Any]:
    """Train candidate models for a user and install the best one."""
    report = await trainer.train_user_models(user_id, as_of=as_of)
    await engine.invalidate_user(user_id)
    return report.to_dict()


@router.get("/{user_id}/models")
async def list_models(
    user_id: str,
    registry: ModelRegistry = Depends(get_model_registry),
) -> Dict[str, Any]:
    """Current model and version history for a user."""
    current = await registry.load_current(user_id)
    return {
        "user_id": user_id,
        "current": current.to_dict() if current else None,
        "history": [info.to_dict() for info in registry.history(user_id)],
    }
