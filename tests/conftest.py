"""
Pytest configuration and fixtures for feature evaluation tests.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pytest

from feature_eval.components.data.dataset import Dataset
from feature_eval.contracts.boosting_configs import BoostingModel
from feature_eval.contracts.cv_configs import CvPartitionModel
from feature_eval.contracts.eval_configs import FeatureEvalModel
from feature_eval.contracts.run_config import FeatureEvalRunConfig


@dataclass
class StubMetric:
    """Metric double with a configurable direction."""

    name: str = "Loss"
    direction: str = "Min"

    def best_value(self) -> Tuple[str, Optional[float]]:
        return self.direction, None

    def evaluate(self, approx, target) -> float:
        return float(np.mean((np.asarray(approx) - np.asarray(target)) ** 2))


class RecordingCallbacks:
    """Training callbacks that count iterations and optionally stop early."""

    def __init__(self, stop_after: Optional[int] = None, accept_snapshot: bool = False):
        self.calls = 0
        self.stop_after = stop_after
        self.accept_snapshot = accept_snapshot
        self.saved = 0

    def is_continue_training(self, history) -> bool:
        self.calls += 1
        return self.stop_after is None or self.calls < self.stop_after

    def on_save_snapshot(self, stream) -> None:
        self.saved += 1
        stream.write(b"state")

    def on_load_snapshot(self, stream) -> bool:
        return self.accept_snapshot


@pytest.fixture
def regression_dataset():
    """120 objects; feature 0 drives the target, feature 3 is constant."""
    rng = np.random.default_rng(0)
    n = 120
    X = rng.normal(size=(n, 4))
    X[:, 3] = 1.0
    y = 3.0 * X[:, 0] + 0.1 * rng.normal(size=n)
    return Dataset(X, y)


def _grouped(with_time: bool) -> Dataset:
    rng = np.random.default_rng(1)
    n_groups, size = 30, 4
    n = n_groups * size
    X = rng.normal(size=(n, 3))
    y = 2.0 * X[:, 0] + 0.1 * rng.normal(size=n)
    group_id = np.repeat(np.arange(n_groups), size)
    timestamp = np.repeat(np.arange(n_groups) * 10, size) if with_time else None
    return Dataset(X, y, group_id=group_id, timestamp=timestamp)


@pytest.fixture
def grouped_dataset():
    """30 contiguous groups of 4 objects, no timestamps."""
    return _grouped(with_time=False)


@pytest.fixture
def timed_dataset():
    """30 contiguous groups of 4 objects; group g has timestamp 10 * g."""
    return _grouped(with_time=True)


@pytest.fixture
def small_run_config():
    """Fast OneVsNone regression evaluation over five folds of 20 objects."""
    return FeatureEvalRunConfig(
        feature_eval=FeatureEvalModel(
            features_to_evaluate=[[0], [2]],
            feature_eval_mode="OneVsNone",
            fold_size=20,
            fold_count=5,
        ),
        cv=CvPartitionModel(shuffle=True),
        boosting=BoostingModel(loss_function="RMSE", iterations=15, depth=2),
        random_seed=7,
    )


@pytest.fixture
def stub_metric():
    """Factory for metric doubles: ``stub_metric(name, direction)``."""
    return StubMetric


@pytest.fixture
def recording_callbacks():
    """Factory for training callback doubles."""
    return RecordingCallbacks
