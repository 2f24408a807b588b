"""Workout history records and derived training samples."""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional

from ..exceptions import ValidationError
from .features import FeatureVector


def _check_rating(name: str, value: Optional[float]) -> None:
    if value is not None and not 1 <= value <= 10:
        raise ValidationError(f"{name} must be between 1 and 10", field=name)


@dataclass(frozen=True)
class StressRecord:
    """One completed workout as stored in the load history."""

    date: date
    stress_score: float
    duration_minutes: float = 0.0
    workout_type: str = "endurance"
    performance_rating: Optional[float] = None  # 1-10 subjective
    recovery_rating: Optional[float] = None  # 1-10 subjective

    def __post_init__(self) -> None:
        if self.stress_score < 0:
            raise ValidationError(
                "stress_score must be non-negative",
                field="stress_score",
                details={"value": self.stress_score},
            )
        if self.duration_minutes < 0:
            raise ValidationError(
                "duration_minutes must be non-negative",
                field="duration_minutes",
            )
        _check_rating("performance_rating", self.performance_rating)
        _check_rating("recovery_rating", self.recovery_rating)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "stress_score": self.stress_score,
            "duration_minutes": self.duration_minutes,
            "workout_type": self.workout_type,
            "performance_rating": self.performance_rating,
            "recovery_rating": self.recovery_rating,
        }


@dataclass(frozen=True)
class TrainingSample:
    """
    Features observed on the day before a workout joined with its outcome.

    The realized stress is the label the models learn to predict.
    """

    features: FeatureVector
    realized_stress: float
    workout_type: str
    date: date
    performance_rating: Optional[float] = None
    recovery_rating: Optional[float] = None


@dataclass(frozen=True)
class TrainingLoadStats:
    """Summary statistics of session stress over a window."""

    mean_stress: float
    std_stress: float
    min_stress: float
    max_stress: float
    session_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mean_stress": round(self.mean_stress, 1),
            "std_stress": round(self.std_stress, 1),
            "min_stress": round(self.min_stress, 1),
            "max_stress": round(self.max_stress, 1),
            "session_count": self.session_count,
        }
