"""
Model fitting for next-workout stress prediction.

Two model kinds share one feature layout:
- regression: LinearRegression on raw stress
- classification: RandomForestClassifier on six stress bins, mapped back
  to a representative stress per bin
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LinearRegression

from ..exceptions import InsufficientDataError
from ..models.features import FEATURE_NAMES
from ..models.records import TrainingSample
from .evaluation import ModelMetrics, score_predictions
from .scaler import FeatureScaler

logger = logging.getLogger(__name__)


class ModelKind(str, Enum):
    """Supported model families."""
    REGRESSION = "regression"
    CLASSIFICATION = "classification"


MIN_SAMPLES: Dict[ModelKind, int] = {
    ModelKind.REGRESSION: 10,
    ModelKind.CLASSIFICATION: 20,
}

TRAIN_FRACTION = 0.8

# Representative stress for each class label
STRESS_BIN_VALUES: Tuple[float, ...] = (25.0, 75.0, 150.0, 250.0, 350.0, 450.0)


def stress_to_bin(stress: float) -> int:
    """Class label for a stress score, using its integer part."""
    value = int(stress)
    if value <= 50:
        return 0
    elif value <= 100:
        return 1
    elif value <= 200:
        return 2
    elif value <= 300:
        return 3
    elif value <= 400:
        return 4
    return 5


def bin_to_stress(label: int) -> float:
    return STRESS_BIN_VALUES[int(label)]


def new_version(kind: ModelKind) -> str:
    """Unique version string, e.g. ``regression_v1718000000_3fa2c1``."""
    return f"{kind.value}_v{int(time.time())}_{uuid.uuid4().hex[:6]}"


@dataclass(frozen=True)
class FittedModel:
    """An immutable trained model with the scaler it was fitted with."""

    kind: ModelKind
    version: str
    estimator: Any
    scaler: FeatureScaler
    created_at: datetime = field(default_factory=datetime.now)
    feature_names: Tuple[str, ...] = FEATURE_NAMES

    @property
    def n_features(self) -> int:
        return self.scaler.n_features

    def predict_raw(self, values: Sequence[float]) -> float:
        """
        Model output in stress units.

        Raises FeatureShapeMismatchError when the vector width differs from
        the width the scaler was fitted on.
        """
        X = self.scaler.transform_one(values)
        if self.kind is ModelKind.REGRESSION:
            return float(self.estimator.predict(X)[0])
        elif self.kind is ModelKind.CLASSIFICATION:
            return bin_to_stress(self.estimator.predict(X)[0])
        raise ValueError(f"Unsupported model kind: {self.kind}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "feature_names": list(self.feature_names),
        }


def _build_estimator(kind: ModelKind) -> Any:
    if kind is ModelKind.REGRESSION:
        return LinearRegression()
    elif kind is ModelKind.CLASSIFICATION:
        return RandomForestClassifier(
            n_estimators=100,
            max_depth=10,
            min_samples_split=5,
            random_state=42,
        )
    raise ValueError(f"Unsupported model kind: {kind}")


def _targets(kind: ModelKind, stress: np.ndarray) -> np.ndarray:
    if kind is ModelKind.REGRESSION:
        return stress
    elif kind is ModelKind.CLASSIFICATION:
        return np.array([stress_to_bin(s) for s in stress], dtype=int)
    raise ValueError(f"Unsupported model kind: {kind}")


def _predict_stress(kind: ModelKind, estimator: Any, X: np.ndarray) -> np.ndarray:
    raw = estimator.predict(X)
    if kind is ModelKind.REGRESSION:
        return raw
    elif kind is ModelKind.CLASSIFICATION:
        return np.array([bin_to_stress(label) for label in raw], dtype=float)
    raise ValueError(f"Unsupported model kind: {kind}")


def to_arrays(samples: Sequence[TrainingSample]) -> Tuple[np.ndarray, np.ndarray]:
    X = np.array([s.features.to_list() for s in samples], dtype=float)
    y = np.array([s.realized_stress for s in samples], dtype=float)
    return X, y


def chronological_split(
    samples: Sequence[TrainingSample],
) -> Tuple[List[TrainingSample], List[TrainingSample]]:
    """Order by date (stable) and split 80/20 without shuffling."""
    ordered = sorted(samples, key=lambda s: s.date)
    split = int(len(ordered) * TRAIN_FRACTION)
    return ordered[:split], ordered[split:]


def train_model(
    train: Sequence[TrainingSample],
    kind: ModelKind = ModelKind.REGRESSION,
) -> FittedModel:
    """Fit scaler and estimator on ``train`` only."""
    X_train, y_train = to_arrays(train)
    scaler = FeatureScaler().fit(X_train)
    estimator = _build_estimator(kind)
    estimator.fit(scaler.transform(X_train), _targets(kind, y_train))
    return FittedModel(kind=kind, version=new_version(kind), estimator=estimator, scaler=scaler)


def evaluate_model(
    model: FittedModel,
    test: Sequence[TrainingSample],
    sample_count: int,
) -> ModelMetrics:
    """Score ``model`` on held-out samples; classification is scored on de-binned values."""
    X_test, y_test = to_arrays(test)
    predictions = _predict_stress(model.kind, model.estimator, model.scaler.transform(X_test))
    return score_predictions(y_test, predictions, sample_count=sample_count, model_version=model.version)


def fit_model(
    samples: Sequence[TrainingSample],
    kind: ModelKind = ModelKind.REGRESSION,
) -> Tuple[FittedModel, ModelMetrics]:
    """
    Fit a model of ``kind`` and score it on the chronological hold-out.

    Raises:
        InsufficientDataError: Fewer samples than the kind requires
    """
    required = MIN_SAMPLES[kind]
    if len(samples) < required:
        raise InsufficientDataError(required=required, actual=len(samples), model_kind=kind.value)

    train, test = chronological_split(samples)
    model = train_model(train, kind)
    metrics = evaluate_model(model, test, sample_count=len(samples))

    logger.info(
        f"Fitted {kind.value} model {model.version} on {len(train)} samples "
        f"(rmse={metrics.rmse:.2f}, r2={metrics.r_squared:.3f})"
    )
    return model, metrics
