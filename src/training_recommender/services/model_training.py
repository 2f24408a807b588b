"""
Model training service.

Fits candidate models for a user, scores them on a chronological hold-out
and installs the best one in the registry. The registry pointer only moves
after a fit succeeds, so a failed retrain leaves the previous model live.
"""

import asyncio
import logging
import statistics
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sklearn.model_selection import KFold

from ..config import Settings, get_settings
from ..exceptions import InsufficientDataError, TrainingRecommenderError, ValidationError
from ..ml.evaluation import ModelMetrics
from ..ml.models import MIN_SAMPLES, ModelKind, evaluate_model, fit_model, train_model
from ..models.records import TrainingSample
from .base import BaseService
from .feature_extraction import FeatureExtractionService
from .model_registry import ModelRegistry


VALID_STRESS_MAX = 1000.0
EXTREME_STRESS = 500.0
SUFFICIENT_SAMPLES = 20
SUFFICIENT_COMPLETENESS = 0.7
TARGET_SAMPLES = 50


@dataclass
class TrainingReport:
    """Outcome of training all candidate models for one user."""

    user_id: str
    sample_count: int
    candidates: List[ModelMetrics]
    selected_version: str

    @property
    def selected(self) -> ModelMetrics:
        return next(m for m in self.candidates if m.model_version == self.selected_version)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "sample_count": self.sample_count,
            "selected_version": self.selected_version,
            "candidates": [m.to_dict() for m in self.candidates],
        }


@dataclass
class CrossValidationResult:
    """Per-fold held-out metrics."""

    kind: ModelKind
    folds: List[ModelMetrics] = field(default_factory=list)

    @property
    def mean_rmse(self) -> float:
        return statistics.fmean(m.rmse for m in self.folds) if self.folds else 0.0

    @property
    def mean_mae(self) -> float:
        return statistics.fmean(m.mae for m in self.folds) if self.folds else 0.0

    @property
    def mean_r_squared(self) -> float:
        return statistics.fmean(m.r_squared for m in self.folds) if self.folds else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "fold_count": len(self.folds),
            "mean_rmse": round(self.mean_rmse, 3),
            "mean_mae": round(self.mean_mae, 3),
            "mean_r_squared": round(self.mean_r_squared, 4),
            "folds": [m.to_dict() for m in self.folds],
        }


@dataclass
class DataQualityReport:
    """How usable a user's training samples are."""

    total_samples: int
    valid_samples: int
    data_completeness: float
    zero_stress: int
    extreme_stress: int

    @property
    def is_sufficient(self) -> bool:
        return (
            self.total_samples >= SUFFICIENT_SAMPLES
            and self.data_completeness >= SUFFICIENT_COMPLETENESS
        )

    def improvement_suggestions(self) -> List[str]:
        suggestions = []
        if self.total_samples < TARGET_SAMPLES:
            suggestions.append(
                "Collect more training data - aim for at least 50 workout sessions"
            )
        if self.data_completeness < 0.8:
            suggestions.append(
                "Improve data quality - ensure stress scores are recorded for all workouts"
            )
        if self.zero_stress > self.total_samples // 4:
            suggestions.append(
                "Review zero stress sessions - many workouts have no training stress recorded"
            )
        if self.extreme_stress > self.total_samples // 10:
            suggestions.append(
                "Review high stress sessions - some workouts may have unrealistic training stress values"
            )
        if not suggestions:
            suggestions.append("Data quality is good - models should train effectively")
        return suggestions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_samples": self.total_samples,
            "valid_samples": self.valid_samples,
            "data_completeness": round(self.data_completeness, 3),
            "zero_stress": self.zero_stress,
            "extreme_stress": self.extreme_stress,
            "is_sufficient": self.is_sufficient,
            "suggestions": self.improvement_suggestions(),
        }


def assess_data_quality(samples: Sequence[TrainingSample]) -> DataQualityReport:
    total = len(samples)
    valid = sum(1 for s in samples if 0 < s.realized_stress < VALID_STRESS_MAX)
    return DataQualityReport(
        total_samples=total,
        valid_samples=valid,
        data_completeness=valid / total if total else 0.0,
        zero_stress=sum(1 for s in samples if s.realized_stress == 0),
        extreme_stress=sum(1 for s in samples if s.realized_stress > EXTREME_STRESS),
    )


def cross_validate(
    samples: Sequence[TrainingSample],
    kind: ModelKind = ModelKind.REGRESSION,
    k_folds: int = 5,
) -> CrossValidationResult:
    """
    K-fold validation over contiguous, date-ordered folds.

    Folds whose training part is too small for ``kind`` are skipped.
    """
    if k_folds < 2:
        raise ValidationError("k_folds must be at least 2", field="k_folds")
    required = max(MIN_SAMPLES[kind], k_folds)
    if len(samples) < required:
        raise InsufficientDataError(required=required, actual=len(samples), model_kind=kind.value)

    ordered = sorted(samples, key=lambda s: s.date)
    result = CrossValidationResult(kind=kind)
    for train_idx, test_idx in KFold(n_splits=k_folds, shuffle=False).split(ordered):
        train = [ordered[i] for i in train_idx]
        test = [ordered[i] for i in test_idx]
        if len(train) < MIN_SAMPLES[kind]:
            continue
        model = train_model(train, kind)
        result.folds.append(evaluate_model(model, test, sample_count=len(train)))
    return result


class ModelTrainer(BaseService):
    """Trains per-user models and installs them in the registry."""

    def __init__(
        self,
        registry: ModelRegistry,
        feature_service: Optional[FeatureExtractionService] = None,
        settings: Optional[Settings] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger=logger)
        self.registry = registry
        self.feature_service = feature_service
        self.settings = settings or get_settings()

    def train(
        self,
        user_id: str,
        samples: Sequence[TrainingSample],
        kind: ModelKind = ModelKind.REGRESSION,
    ) -> ModelMetrics:
        """
        Fit one model and make it current for the user.

        Raises:
            InsufficientDataError: Too few samples; the current model is kept
        """
        model, metrics = fit_model(samples, kind)
        self.registry.install(user_id, model, metrics)
        return metrics

    async def load_samples(
        self,
        user_id: str,
        as_of: Optional[date] = None,
        days: Optional[int] = None,
    ) -> List[TrainingSample]:
        """Training samples from the user's history window."""
        if self.feature_service is None:
            raise RuntimeError("ModelTrainer has no feature service")
        end = as_of or date.today()
        start = end - timedelta(days=days or self.settings.training_window_days)
        return await self.feature_service.extract_training_samples(user_id, start, end)

    async def train_user_models(
        self,
        user_id: str,
        as_of: Optional[date] = None,
    ) -> TrainingReport:
        """
        Train every eligible candidate and install the lowest-RMSE one.

        Regression is always a candidate; classification joins once the
        user has enough samples.
        """
        samples = await self.load_samples(user_id, as_of)

        kinds = [ModelKind.REGRESSION]
        if len(samples) >= self.settings.classification_candidate_min_samples:
            kinds.append(ModelKind.CLASSIFICATION)

        fitted = []
        for kind in kinds:
            fitted.append(await asyncio.to_thread(fit_model, samples, kind))

        best_model, best_metrics = min(fitted, key=lambda pair: pair[1].rmse)
        await self.registry.install_async(user_id, best_model, best_metrics)

        self.logger.info(
            f"Trained {len(fitted)} candidate(s) for {user_id}; "
            f"selected {best_model.version} (rmse={best_metrics.rmse:.2f})"
        )
        return TrainingReport(
            user_id=user_id,
            sample_count=len(samples),
            candidates=[metrics for _, metrics in fitted],
            selected_version=best_model.version,
        )

    async def batch_train(self, user_ids: Iterable[str]) -> Dict[str, TrainingReport]:
        """Train many users; one user's failure does not stop the others."""
        reports: Dict[str, TrainingReport] = {}
        for user_id in user_ids:
            try:
                reports[user_id] = await self.train_user_models(user_id)
            except TrainingRecommenderError as e:
                self.logger.warning(f"Training failed for {user_id}: {e.message}")
        return reports

    async def assess_user_data_quality(
        self,
        user_id: str,
        as_of: Optional[date] = None,
        days: Optional[int] = None,
    ) -> DataQualityReport:
        samples = await self.load_samples(user_id, as_of, days)
        return assess_data_quality(samples)
