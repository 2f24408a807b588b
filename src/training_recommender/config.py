"""Configuration settings for the training recommendation engine."""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


# __file__ = src/training_recommender/config.py
# .parent.parent.parent = project root
PACKAGE_ROOT = Path(__file__).parent
PROJECT_ROOT = PACKAGE_ROOT.parent.parent


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TRAINING_RECOMMENDER_",
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Performance-management time constants (days)
    chronic_time_constant: int = 42
    acute_time_constant: int = 7

    # Feature extraction
    feature_lookback_days: int = 30
    training_window_days: int = 365

    # Edge-case handling
    min_data_points: int = 5
    new_user_threshold_days: int = 14
    fallback_stress_easy: float = 75.0
    fallback_stress_moderate: float = 150.0
    fallback_stress_hard: float = 250.0
    max_balance_for_hard_workout: float = -15.0
    min_balance_for_recovery: float = -25.0
    detraining_balance_ceiling: float = 50.0

    # Final recommendation bounds
    min_recommended_stress: float = 10.0
    max_recommended_stress: float = 500.0

    # Cache and maintenance
    cache_ttl_seconds: int = 3600
    cache_cleanup_interval_minutes: int = 15
    retrain_interval_hours: int = 24
    maintenance_enabled: bool = True

    # Model training
    classification_candidate_min_samples: int = 50

    # Storage
    database_path: Path | None = None
    model_dir: Path | None = None

    def model_post_init(self, __context) -> None:
        """Set default storage paths after initialization."""
        if self.database_path is None:
            self.database_path = PROJECT_ROOT / "training.db"
        if self.model_dir is None:
            self.model_dir = PROJECT_ROOT / "models"


@dataclass(frozen=True)
class EdgeCaseConfig:
    """Thresholds and fallback targets used by the recommendation engine."""

    min_data_points: int = 5
    new_user_threshold_days: int = 14
    fallback_stress_easy: float = 75.0
    fallback_stress_moderate: float = 150.0
    fallback_stress_hard: float = 250.0
    max_balance_for_hard_workout: float = -15.0
    min_balance_for_recovery: float = -25.0
    detraining_balance_ceiling: float = 50.0
    min_recommended_stress: float = 10.0
    max_recommended_stress: float = 500.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "EdgeCaseConfig":
        return cls(
            min_data_points=settings.min_data_points,
            new_user_threshold_days=settings.new_user_threshold_days,
            fallback_stress_easy=settings.fallback_stress_easy,
            fallback_stress_moderate=settings.fallback_stress_moderate,
            fallback_stress_hard=settings.fallback_stress_hard,
            max_balance_for_hard_workout=settings.max_balance_for_hard_workout,
            min_balance_for_recovery=settings.min_balance_for_recovery,
            detraining_balance_ceiling=settings.detraining_balance_ceiling,
            min_recommended_stress=settings.min_recommended_stress,
            max_recommended_stress=settings.max_recommended_stress,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
