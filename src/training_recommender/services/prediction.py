"""Raw stress prediction from a user's current model."""

import logging
from datetime import datetime
from typing import Optional

from ..exceptions import NoModelAvailableError
from ..ml.models import FittedModel, ModelKind
from ..models.features import FeatureVector
from ..models.recommendation import Prediction, WorkoutType
from .base import BaseService
from .model_registry import ModelRegistry


INTERVAL_FRACTION = 0.10
REGRESSION_CONFIDENCE = 0.8
REGRESSION_OUT_OF_RANGE_CONFIDENCE = 0.5
REGRESSION_PLAUSIBLE_MAX = 500.0
CLASSIFICATION_CONFIDENCE = 0.75
RECOVERY_BALANCE = -20.0


def classify_workout_type(stress: float, balance: float) -> WorkoutType:
    """Workout type implied by predicted stress and current balance."""
    if balance < RECOVERY_BALANCE:
        return WorkoutType.RECOVERY
    elif stress < 100:
        return WorkoutType.ENDURANCE
    elif stress < 200:
        return WorkoutType.THRESHOLD
    return WorkoutType.VO2MAX


def _confidence(kind: ModelKind, raw: float) -> float:
    # Placeholder heuristics; only the [0, 1] range is guaranteed
    if kind is ModelKind.REGRESSION:
        if 0 < raw < REGRESSION_PLAUSIBLE_MAX:
            return REGRESSION_CONFIDENCE
        return REGRESSION_OUT_OF_RANGE_CONFIDENCE
    elif kind is ModelKind.CLASSIFICATION:
        return CLASSIFICATION_CONFIDENCE
    raise ValueError(f"Unsupported model kind: {kind}")


class Predictor(BaseService):
    """Scores feature vectors with the user's current model."""

    def __init__(
        self,
        registry: ModelRegistry,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger=logger)
        self.registry = registry

    async def current_model(self, user_id: str) -> FittedModel:
        model = await self.registry.load_current(user_id)
        if model is None:
            raise NoModelAvailableError(user_id=user_id)
        return model

    async def predict(self, user_id: str, features: FeatureVector) -> Prediction:
        """
        Predict the next-workout stress for a user.

        Raises:
            NoModelAvailableError: The user has no current model
            FeatureShapeMismatchError: The vector width differs from the model's
        """
        model = await self.current_model(user_id)
        return self.score(model, features)

    def score(self, model: FittedModel, features: FeatureVector) -> Prediction:
        raw = model.predict_raw(features.to_list())

        stress = max(raw, 0.0)
        return Prediction(
            recommended_stress=stress,
            confidence=_confidence(model.kind, raw),
            lower_bound=max(stress * (1 - INTERVAL_FRACTION), 0.0),
            upper_bound=stress * (1 + INTERVAL_FRACTION),
            workout_type=classify_workout_type(stress, features.balance),
            model_version=model.version,
            predicted_at=datetime.now(),
        )
