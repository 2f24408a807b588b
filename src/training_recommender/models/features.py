"""Fixed-order feature vector consumed by the models."""

from dataclasses import dataclass, fields
from typing import Dict, List, Sequence, Tuple

from ..exceptions import FeatureShapeMismatchError


# Order matters: it defines the one-hot columns of every fitted model
WORKOUT_TYPE_VOCABULARY: Tuple[str, ...] = (
    "endurance",
    "threshold",
    "vo2max",
    "recovery",
    "strength",
)

# Sentinels
NO_TARGET_EVENT = -1.0
NO_PREVIOUS_SESSION = 999.0


@dataclass(frozen=True)
class FeatureVector:
    """Model input for one user on one day."""

    chronic_load: float
    acute_load: float
    balance: float
    days_since_last_session: float
    avg_weekly_stress_4weeks: float
    performance_trend: float
    days_until_target_event: float
    seasonal_factor: float
    prefers_endurance: float = 0.0
    prefers_threshold: float = 0.0
    prefers_vo2max: float = 0.0
    prefers_recovery: float = 0.0
    prefers_strength: float = 0.0

    def to_list(self) -> List[float]:
        """Values in FEATURE_NAMES order."""
        return [float(getattr(self, name)) for name in FEATURE_NAMES]

    def to_dict(self) -> Dict[str, float]:
        return {name: float(getattr(self, name)) for name in FEATURE_NAMES}

    @property
    def preferred_types(self) -> List[str]:
        return [
            workout_type
            for workout_type in WORKOUT_TYPE_VOCABULARY
            if getattr(self, f"prefers_{workout_type}") > 0
        ]

    @classmethod
    def from_values(cls, values: Sequence[float]) -> "FeatureVector":
        """Build from raw values; the length must match FEATURE_COUNT exactly."""
        if len(values) != FEATURE_COUNT:
            raise FeatureShapeMismatchError(expected=FEATURE_COUNT, actual=len(values))
        return cls(*(float(v) for v in values))


FEATURE_NAMES: Tuple[str, ...] = tuple(f.name for f in fields(FeatureVector))
FEATURE_COUNT = len(FEATURE_NAMES)
