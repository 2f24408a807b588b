"""Model fitting, scaling and evaluation."""

from .evaluation import ModelMetrics, score_predictions
from .models import (
    MIN_SAMPLES,
    FittedModel,
    ModelKind,
    bin_to_stress,
    evaluate_model,
    fit_model,
    train_model,
    stress_to_bin,
)
from .scaler import FeatureScaler

__all__ = [
    "ModelMetrics",
    "score_predictions",
    "MIN_SAMPLES",
    "FittedModel",
    "ModelKind",
    "bin_to_stress",
    "evaluate_model",
    "fit_model",
    "train_model",
    "stress_to_bin",
    "FeatureScaler",
]
