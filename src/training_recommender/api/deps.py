"""Dependency injection for API routes."""

from functools import lru_cache

from ..config import get_settings
from ..db.analytics import SQLiteAnalyticsRepository
from ..db.history import SQLiteLoadHistoryStore
from ..services.cache import InMemoryRecommendationCache
from ..services.feature_extraction import FeatureExtractionService
from ..services.maintenance import MaintenanceScheduler
from ..services.model_registry import ModelRegistry
from ..services.model_training import ModelTrainer
from ..services.prediction import Predictor
from ..services.recommendation import RecommendationEngine


@lru_cache
def get_history_store() -> SQLiteLoadHistoryStore:
    """Get the workout history store."""
    return SQLiteLoadHistoryStore(get_settings().database_path)


@lru_cache
def get_analytics_repository() -> SQLiteAnalyticsRepository:
    return SQLiteAnalyticsRepository(get_settings().database_path)


@lru_cache
def get_model_registry() -> ModelRegistry:
    return ModelRegistry(get_settings().model_dir)


@lru_cache
def get_recommendation_cache() -> InMemoryRecommendationCache:
    return InMemoryRecommendationCache(ttl_seconds=get_settings().cache_ttl_seconds)


@lru_cache
def get_feature_service() -> FeatureExtractionService:
    return FeatureExtractionService(get_history_store(), settings=get_settings())


@lru_cache
def get_model_trainer() -> ModelTrainer:
    return ModelTrainer(get_model_registry(), get_feature_service(), settings=get_settings())


@lru_cache
def get_recommendation_engine() -> RecommendationEngine:
    """Get the recommendation engine wired to the shared cache and stores."""
    return RecommendationEngine(
        feature_service=get_feature_service(),
        predictor=Predictor(get_model_registry()),
        cache=get_recommendation_cache(),
        analytics=get_analytics_repository(),
        settings=get_settings(),
    )


@lru_cache
def get_maintenance_scheduler() -> MaintenanceScheduler:
    return MaintenanceScheduler(
        get_recommendation_engine(),
        get_model_trainer(),
        get_history_store().user_ids,
        settings=get_settings(),
    )
