from __future__ import annotations

from typing import Sequence

import numpy as np
from sklearn.preprocessing import StandardScaler
from sklearn.utils.validation import check_is_fitted


class Scaler:
    """
    Standardise a univariate series with statistics from a training subrange.

    ``scale`` and ``descale`` are pure once fitted and preserve the input shape;
    calling either before :meth:`fit` raises ``sklearn.exceptions.NotFittedError``.
    """

    def __init__(self) -> None:
        self._scaler = StandardScaler()

    def fit(self, values: Sequence[float] | np.ndarray) -> "Scaler":
        arr = np.asarray(values, dtype=np.float64).reshape(-1, 1)
        if arr.size == 0:
            raise ValueError("Cannot fit a scaler on an empty range")
        self._scaler.fit(arr)
        return self

    @property
    def mean(self) -> float:
        check_is_fitted(self._scaler)
        return float(self._scaler.mean_[0])

    @property
    def std(self) -> float:
        check_is_fitted(self._scaler)
        return float(self._scaler.scale_[0])

    def scale(self, x):
        return self._apply(x, self._scaler.transform)

    def descale(self, z):
        return self._apply(z, self._scaler.inverse_transform)

    def _apply(self, x, fn):
        check_is_fitted(self._scaler)
        arr = np.asarray(x, dtype=np.float64)
        out = fn(arr.reshape(-1, 1)).reshape(arr.shape)
        if out.ndim == 0:
            return float(out)
        return out


def fit_scaler(values: Sequence[float] | np.ndarray) -> Scaler:
    return Scaler().fit(values)
