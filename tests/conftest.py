"""Shared fixtures for the training recommender tests."""

from datetime import date, timedelta

import numpy as np
import pytest

from training_recommender.config import Settings
from training_recommender.models.features import FeatureVector
from training_recommender.models.records import StressRecord, TrainingSample


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway database and model directory."""
    return Settings(
        database_path=tmp_path / "training.db",
        model_dir=tmp_path / "models",
        maintenance_enabled=False,
    )


@pytest.fixture
def make_features():
    """Factory for feature vectors with sensible defaults."""

    def _make(**overrides) -> FeatureVector:
        values = {
            "chronic_load": 60.0,
            "acute_load": 55.0,
            "balance": 5.0,
            "days_since_last_session": 1.0,
            "avg_weekly_stress_4weeks": 400.0,
            "performance_trend": 0.0,
            "days_until_target_event": -1.0,
            "seasonal_factor": 1.0,
            "prefers_endurance": 1.0,
        }
        values.update(overrides)
        return FeatureVector(**values)

    return _make


@pytest.fixture
def linear_samples(make_features):
    """
    25 daily samples where realized stress is 0.8 x chronic load plus noise.

    Chronic loads are shuffled across dates so the chronological hold-out
    covers the whole range.
    """

    def _make(count: int = 25, start: date = date(2024, 1, 1), seed: int = 42):
        rng = np.random.RandomState(seed)
        chronic = rng.permutation(np.linspace(20.0, 200.0, count))
        noise = rng.normal(0.0, 3.0, count)
        return [
            TrainingSample(
                features=make_features(chronic_load=float(c)),
                realized_stress=float(0.8 * c + n),
                workout_type="endurance",
                date=start + timedelta(days=i),
            )
            for i, (c, n) in enumerate(zip(chronic, noise))
        ]

    return _make


@pytest.fixture
def daily_records():
    """Factory for one record per day over a date range."""

    def _make(start: date, days: int, stress: float = 80.0, workout_type: str = "endurance"):
        return [
            StressRecord(
                date=start + timedelta(days=i),
                stress_score=stress,
                duration_minutes=60.0,
                workout_type=workout_type,
            )
            for i in range(days)
        ]

    return _make
