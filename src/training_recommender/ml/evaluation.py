"""Held-out evaluation metrics."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Sequence

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score


@dataclass(frozen=True)
class ModelMetrics:
    """Accuracy of a fitted model on its held-out split."""

    mae: float
    rmse: float
    r_squared: float
    sample_count: int
    model_version: str
    evaluated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mae": round(self.mae, 3),
            "rmse": round(self.rmse, 3),
            "r_squared": round(self.r_squared, 4),
            "sample_count": self.sample_count,
            "model_version": self.model_version,
            "evaluated_at": self.evaluated_at.isoformat(),
        }


def score_predictions(
    actual: Sequence[float],
    predicted: Sequence[float],
    sample_count: int,
    model_version: str,
) -> ModelMetrics:
    """MAE, RMSE and R^2 of predictions against actual values."""
    y_true = np.asarray(actual, dtype=float)
    y_pred = np.asarray(predicted, dtype=float)
    return ModelMetrics(
        mae=float(mean_absolute_error(y_true, y_pred)),
        rmse=math.sqrt(float(mean_squared_error(y_true, y_pred))),
        r_squared=float(r2_score(y_true, y_pred)) if len(y_true) > 1 else 0.0,
        sample_count=sample_count,
        model_version=model_version,
    )
