"""Recommendation request/response models."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class WorkoutType(str, Enum):
    """Workout categories a recommendation can prescribe."""
    ENDURANCE = "endurance"
    THRESHOLD = "threshold"
    VO2MAX = "vo2max"
    RECOVERY = "recovery"
    STRENGTH = "strength"


class PreferredIntensity(str, Enum):
    """Intensity the athlete asks for in their feedback."""
    EASY = "easy"
    MODERATE = "moderate"
    HARD = "hard"


class EdgeCase(str, Enum):
    """Conditions under which the rule-based fallback replaces the model."""
    NEW_USER = "new_user"
    OVERTRAINED = "overtrained"
    INSUFFICIENT_DATA = "insufficient_data"
    DETRAINING = "detraining"
    NO_MODEL = "no_model"


@dataclass(frozen=True)
class Prediction:
    """Raw model output before any decision-layer adjustment."""

    recommended_stress: float
    confidence: float
    lower_bound: float
    upper_bound: float
    workout_type: WorkoutType
    model_version: str
    predicted_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recommended_stress": self.recommended_stress,
            "confidence": self.confidence,
            "lower_bound": self.lower_bound,
            "upper_bound": self.upper_bound,
            "workout_type": self.workout_type.value,
            "model_version": self.model_version,
            "predicted_at": self.predicted_at.isoformat(),
        }


# ============================================================================
# Pydantic Models (for API request/response)
# ============================================================================

class UserFeedback(BaseModel):
    """Subjective state reported by the athlete."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "perceived_difficulty": 6,
                "energy_level": 7,
                "motivation": 8,
                "available_time_minutes": 60,
                "preferred_intensity": "moderate",
            }
        },
    )

    perceived_difficulty: int = Field(..., ge=1, le=10)
    energy_level: int = Field(..., ge=1, le=10)
    motivation: int = Field(..., ge=1, le=10)
    available_time_minutes: Optional[int] = Field(default=None, gt=0)
    preferred_intensity: Optional[PreferredIntensity] = None


class RecommendationRequest(BaseModel):
    """Request for a next-workout recommendation."""

    user_id: str = Field(..., min_length=1)
    target_date: Optional[date] = Field(
        default=None, description="Day to recommend for (defaults to today)"
    )
    preferred_workout_type: Optional[WorkoutType] = None
    max_duration_minutes: Optional[int] = Field(default=None, gt=0)
    feedback: Optional[UserFeedback] = None

    def options_payload(self) -> Dict[str, Any]:
        """Request options that change the outcome, excluding user and date."""
        return self.model_dump(
            mode="json",
            include={"preferred_workout_type", "max_duration_minutes", "feedback"},
        )


class Recommendation(BaseModel):
    """Recommended training stress for the next workout."""

    model_config = ConfigDict(protected_namespaces=())

    user_id: str
    recommended_stress: float
    confidence: float = Field(..., ge=0.0, le=1.0)
    lower_bound: float
    upper_bound: float
    workout_type: WorkoutType
    model_version: str
    alternatives: List["Recommendation"] = Field(default_factory=list)
    reasoning: str = ""
    warnings: List[str] = Field(default_factory=list)
    edge_case: Optional[EdgeCase] = None
    cached: bool = False
    generated_at: datetime = Field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible record for the hosting API."""
        return self.model_dump(mode="json")
