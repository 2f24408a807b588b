"""Per-feature standardization fitted on the training split only."""

from typing import List, Sequence

import numpy as np
from sklearn.preprocessing import StandardScaler

from ..exceptions import FeatureShapeMismatchError


class FeatureScaler:
    """
    Wraps StandardScaler with an explicit width check.

    Zero-variance features scale by 1. Once fitted the parameters never
    change; refitting means building a new scaler.
    """

    def __init__(self) -> None:
        self._scaler = StandardScaler()
        self._fitted = False

    @property
    def is_fitted(self) -> bool:
        return self._fitted

    @property
    def n_features(self) -> int:
        return int(self._scaler.n_features_in_)

    @property
    def mean(self) -> List[float]:
        return self._scaler.mean_.tolist()

    @property
    def scale(self) -> List[float]:
        return self._scaler.scale_.tolist()

    def fit(self, X: np.ndarray) -> "FeatureScaler":
        if self._fitted:
            raise RuntimeError("FeatureScaler is already fitted")
        self._scaler.fit(X)
        self._fitted = True
        return self

    def check_width(self, width: int) -> None:
        if width != self.n_features:
            raise FeatureShapeMismatchError(expected=self.n_features, actual=width)

    def transform(self, X: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(1, -1)
        self.check_width(X.shape[1])
        return self._scaler.transform(X)

    def transform_one(self, values: Sequence[float]) -> np.ndarray:
        self.check_width(len(values))
        return self._scaler.transform(np.asarray([values], dtype=float))
