"""Engine services."""

from .base import BaseService
from .cache import CacheStats, InMemoryRecommendationCache, RecommendationCache
from .feature_extraction import FeatureExtractionService, build_feature_vector
from .model_registry import ModelRegistry, ModelVersionInfo
from .model_training import (
    DataQualityReport,
    ModelTrainer,
    TrainingReport,
    assess_data_quality,
    cross_validate,
)
from .prediction import Predictor
from .recommendation import RecommendationEngine

__all__ = [
    "BaseService",
    "CacheStats",
    "InMemoryRecommendationCache",
    "RecommendationCache",
    "FeatureExtractionService",
    "build_feature_vector",
    "ModelRegistry",
    "ModelVersionInfo",
    "DataQualityReport",
    "ModelTrainer",
    "TrainingReport",
    "assess_data_quality",
    "cross_validate",
    "Predictor",
    "RecommendationEngine",
]
