from __future__ import annotations

"""Metrics evaluated on raw model approxes.

Binary classifiers produce one logit per object, multiclass ones a column of
raw scores per class; regressors produce the prediction itself. Every metric
declares the direction of improvement so per-fold best iterations and deltas
can be computed without knowing the formula.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import numpy as np
from scipy.special import expit, softmax
from sklearn.metrics import (
    accuracy_score,
    log_loss,
    mean_absolute_error,
    mean_squared_error,
    r2_score,
    roc_auc_score,
)

from feature_eval.contracts.types import MetricDirection


def _check_len(approx: np.ndarray, target: np.ndarray) -> None:
    if approx.shape[0] != target.shape[0]:
        raise ValueError(
            f"Length mismatch: approx({approx.shape[0]}) vs target({target.shape[0]})."
        )


def _probabilities(approx: np.ndarray) -> np.ndarray:
    if approx.ndim == 1:
        return expit(approx)
    return softmax(approx, axis=1)


def _hard_labels(approx: np.ndarray) -> np.ndarray:
    if approx.ndim == 1:
        return (approx > 0).astype(np.int64)
    return np.argmax(approx, axis=1)


def rmse(approx: np.ndarray, target: np.ndarray) -> float:
    return float(np.sqrt(mean_squared_error(target, approx)))


def mae(approx: np.ndarray, target: np.ndarray) -> float:
    return float(mean_absolute_error(target, approx))


def r2(approx: np.ndarray, target: np.ndarray) -> float:
    return float(r2_score(target, approx))


def logloss(approx: np.ndarray, target: np.ndarray) -> float:
    if approx.ndim != 1:
        raise ValueError("Logloss expects one raw value per object; use MultiClass for several classes.")
    return float(log_loss(target, expit(approx), labels=[0, 1]))


def multiclass(approx: np.ndarray, target: np.ndarray) -> float:
    if approx.ndim == 1:
        # binary logit -> two-column scores
        approx = np.column_stack([np.zeros_like(approx), approx])
    return float(log_loss(target, softmax(approx, axis=1), labels=list(range(approx.shape[1]))))


def accuracy(approx: np.ndarray, target: np.ndarray) -> float:
    return float(accuracy_score(target, _hard_labels(approx)))


def auc(approx: np.ndarray, target: np.ndarray) -> float:
    # undefined when the sample holds a single class
    if np.unique(target).shape[0] < 2:
        return float("nan")
    if approx.ndim == 1:
        return float(roc_auc_score(target, approx))
    return float(
        roc_auc_score(
            target,
            _probabilities(approx),
            multi_class="ovr",
            labels=list(range(approx.shape[1])),
        )
    )


@dataclass(frozen=True)
class ApproxMetric:
    """A named metric over raw approxes with a known optimization direction."""

    name: str
    direction: MetricDirection
    best: Optional[float]
    fn: Callable[[np.ndarray, np.ndarray], float]

    def best_value(self) -> Tuple[MetricDirection, Optional[float]]:
        return self.direction, self.best

    def evaluate(self, approx: np.ndarray, target: np.ndarray) -> float:
        approx = np.asarray(approx, dtype=float)
        target = np.asarray(target).ravel()
        _check_len(approx, target)
        return self.fn(approx, target)
