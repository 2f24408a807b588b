"""Tests for model fitting, scaling and evaluation."""

import numpy as np
import pytest

from training_recommender.exceptions import FeatureShapeMismatchError, InsufficientDataError
from training_recommender.ml.evaluation import score_predictions
from training_recommender.ml.models import (
    MIN_SAMPLES,
    STRESS_BIN_VALUES,
    ModelKind,
    bin_to_stress,
    chronological_split,
    fit_model,
    new_version,
    stress_to_bin,
)
from training_recommender.ml.scaler import FeatureScaler
from training_recommender.models.features import FEATURE_COUNT


# =============================================================================
# FeatureScaler
# =============================================================================

class TestFeatureScaler:
    """Tests for FeatureScaler."""

    def test_standardizes_training_data(self):
        """Transformed training columns have ~zero mean and unit variance."""
        rng = np.random.RandomState(0)
        X = rng.normal(50.0, 10.0, size=(40, 3))
        scaler = FeatureScaler().fit(X)

        Z = scaler.transform(X)

        assert np.allclose(Z.mean(axis=0), 0.0, atol=1e-9)
        assert np.allclose(Z.std(axis=0), 1.0, atol=1e-9)

    def test_zero_variance_column(self):
        """Constant columns scale by one and transform to zero."""
        X = np.array([[1.0, 5.0], [2.0, 5.0], [3.0, 5.0]])
        scaler = FeatureScaler().fit(X)

        assert scaler.scale[1] == 1.0
        assert np.allclose(scaler.transform(X)[:, 1], 0.0)

    def test_refit_rejected(self):
        """A fitted scaler is frozen."""
        scaler = FeatureScaler().fit(np.ones((3, 2)))
        with pytest.raises(RuntimeError):
            scaler.fit(np.zeros((3, 2)))

    def test_width_mismatch(self):
        """Transforming a vector of the wrong width is fatal."""
        scaler = FeatureScaler().fit(np.ones((3, 4)))

        with pytest.raises(FeatureShapeMismatchError) as exc_info:
            scaler.transform_one([1.0, 2.0, 3.0])

        assert exc_info.value.expected == 4
        assert exc_info.value.actual == 3

    def test_single_row_transform(self):
        """One-dimensional input is treated as a single row."""
        scaler = FeatureScaler().fit(np.array([[0.0, 0.0], [2.0, 4.0]]))
        assert scaler.transform(np.array([1.0, 2.0])).shape == (1, 2)


# =============================================================================
# Stress bins
# =============================================================================

class TestStressBins:
    """Tests for stress discretization."""

    @pytest.mark.parametrize(
        "stress,label",
        [
            (0.0, 0),
            (50.0, 0),
            (50.9, 0),
            (51.0, 1),
            (100.0, 1),
            (150.0, 2),
            (200.0, 2),
            (250.0, 3),
            (400.0, 4),
            (401.0, 5),
            (900.0, 5),
        ],
    )
    def test_stress_to_bin(self, stress, label):
        assert stress_to_bin(stress) == label

    def test_bin_values(self):
        """Each bin maps to its representative stress."""
        assert [bin_to_stress(i) for i in range(6)] == list(STRESS_BIN_VALUES)
        assert STRESS_BIN_VALUES == (25.0, 75.0, 150.0, 250.0, 350.0, 450.0)


# =============================================================================
# Fitting
# =============================================================================

class TestChronologicalSplit:
    """Tests for the 80/20 split."""

    def test_split_is_ordered_by_date(self, linear_samples):
        """The hold-out is always the latest fifth."""
        samples = linear_samples(count=10)
        train, test = chronological_split(list(reversed(samples)))

        assert len(train) == 8
        assert len(test) == 2
        assert max(s.date for s in train) < min(s.date for s in test)

    def test_split_is_reproducible(self, linear_samples):
        samples = linear_samples(count=15)
        assert chronological_split(samples) == chronological_split(samples)


class TestFitModel:
    """Tests for fit_model."""

    def test_regression_learns_linear_relation(self, linear_samples):
        """A noisy linear target is recovered on the hold-out."""
        model, metrics = fit_model(linear_samples(), ModelKind.REGRESSION)

        assert metrics.r_squared > 0.7
        assert metrics.rmse < 20
        assert metrics.mae <= metrics.rmse
        assert metrics.sample_count == 25
        assert metrics.model_version == model.version
        assert model.kind is ModelKind.REGRESSION
        assert model.n_features == FEATURE_COUNT

    def test_scaler_fitted_on_training_split_only(self, linear_samples):
        """Scaler statistics come from the first 80% by date."""
        samples = linear_samples()
        model, _ = fit_model(samples, ModelKind.REGRESSION)

        train, _ = chronological_split(samples)
        expected_mean = np.mean([s.features.chronic_load for s in train])
        assert model.scaler.mean[0] == pytest.approx(expected_mean)

    def test_regression_prediction(self, linear_samples, make_features):
        """Predictions follow the learned slope."""
        model, _ = fit_model(linear_samples(), ModelKind.REGRESSION)

        raw = model.predict_raw(make_features(chronic_load=100.0).to_list())

        assert raw == pytest.approx(80.0, abs=10.0)

    def test_classification_predicts_bin_values(self, linear_samples, make_features):
        """Classification output is always a bin representative."""
        model, metrics = fit_model(linear_samples(count=30), ModelKind.CLASSIFICATION)

        raw = model.predict_raw(make_features(chronic_load=150.0).to_list())

        assert model.kind is ModelKind.CLASSIFICATION
        assert raw in STRESS_BIN_VALUES
        assert metrics.sample_count == 30

    def test_regression_minimum(self, linear_samples):
        """Nine samples are too few for regression."""
        with pytest.raises(InsufficientDataError) as exc_info:
            fit_model(linear_samples(count=9), ModelKind.REGRESSION)

        assert exc_info.value.required == MIN_SAMPLES[ModelKind.REGRESSION] == 10
        assert exc_info.value.actual == 9

    def test_regression_at_minimum(self, linear_samples):
        """Exactly ten samples are enough."""
        model, _ = fit_model(linear_samples(count=10), ModelKind.REGRESSION)
        assert model.version.startswith("regression_v")

    def test_classification_minimum(self, linear_samples):
        """Classification needs twenty samples."""
        with pytest.raises(InsufficientDataError) as exc_info:
            fit_model(linear_samples(count=15), ModelKind.CLASSIFICATION)

        assert exc_info.value.required == 20
        assert exc_info.value.details["model_kind"] == "classification"

    def test_prediction_shape_mismatch(self, linear_samples):
        """A vector with a missing feature is rejected, never broadcast."""
        model, _ = fit_model(linear_samples(), ModelKind.REGRESSION)

        with pytest.raises(FeatureShapeMismatchError):
            model.predict_raw([1.0] * (FEATURE_COUNT - 1))

    def test_fitted_model_is_immutable(self, linear_samples):
        model, _ = fit_model(linear_samples(), ModelKind.REGRESSION)
        with pytest.raises(AttributeError):
            model.version = "other"

    def test_to_dict(self, linear_samples):
        model, _ = fit_model(linear_samples(), ModelKind.REGRESSION)
        data = model.to_dict()

        assert data["kind"] == "regression"
        assert data["version"] == model.version
        assert len(data["feature_names"]) == FEATURE_COUNT


class TestVersions:
    """Tests for version strings."""

    def test_versions_are_unique(self):
        versions = {new_version(ModelKind.REGRESSION) for _ in range(20)}
        assert len(versions) == 20

    def test_version_prefix(self):
        assert new_version(ModelKind.CLASSIFICATION).startswith("classification_v")


class TestScorePredictions:
    """Tests for score_predictions."""

    def test_perfect_predictions(self):
        metrics = score_predictions([10.0, 20.0, 30.0], [10.0, 20.0, 30.0], 3, "v1")

        assert metrics.mae == 0.0
        assert metrics.rmse == 0.0
        assert metrics.r_squared == pytest.approx(1.0)

    def test_known_errors(self):
        """MAE and RMSE for a known residual pattern."""
        metrics = score_predictions([10.0, 20.0], [12.0, 16.0], 2, "v1")

        assert metrics.mae == pytest.approx(3.0)
        assert metrics.rmse == pytest.approx(np.sqrt(10.0))

    def test_to_dict(self):
        data = score_predictions([1.0, 2.0], [1.0, 2.0], 2, "v9").to_dict()
        assert data["model_version"] == "v9"
        assert "evaluated_at" in data
