"""Domain and API models."""

from .records import StressRecord, TrainingSample, TrainingLoadStats
from .features import (
    FEATURE_COUNT,
    FEATURE_NAMES,
    WORKOUT_TYPE_VOCABULARY,
    FeatureVector,
)
from .recommendation import (
    EdgeCase,
    Prediction,
    PreferredIntensity,
    Recommendation,
    RecommendationRequest,
    UserFeedback,
    WorkoutType,
)

__all__ = [
    "StressRecord",
    "TrainingSample",
    "TrainingLoadStats",
    "FEATURE_COUNT",
    "FEATURE_NAMES",
    "WORKOUT_TYPE_VOCABULARY",
    "FeatureVector",
    "EdgeCase",
    "Prediction",
    "PreferredIntensity",
    "Recommendation",
    "RecommendationRequest",
    "UserFeedback",
    "WorkoutType",
]
