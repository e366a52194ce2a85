from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Iterator, List, Optional, Protocol, Sequence, Tuple

import numpy as np

from feature_eval.components.data.dataset import DatasetView
from feature_eval.contracts.boosting_configs import BoostingModel
from feature_eval.contracts.types import MetricDirection


class Metric(Protocol):
    name: str

    def best_value(self) -> Tuple[MetricDirection, Optional[float]]:
        """Return (direction, best attainable value); direction is Min, Max or Undefined."""
        ...

    def evaluate(self, approx: np.ndarray, target: np.ndarray) -> float:
        """Metric value for raw (margin) predictions ``approx`` against ``target``."""
        ...


class TrainingCallbacks(Protocol):
    """Hooks a trainer calls while growing one model."""

    def is_continue_training(self, history: Sequence[float]) -> bool:
        """Called after every iteration with the train loss history so far."""
        ...

    def on_save_snapshot(self, stream: BinaryIO) -> None:
        """Append the caller's state to a snapshot being written."""
        ...

    def on_load_snapshot(self, stream: BinaryIO) -> bool:
        """Restore the caller's state; False means the snapshot must be ignored."""
        ...


class BoostedModel(Protocol):
    @property
    def tree_count(self) -> int:
        ...

    def iter_approx_deltas(self, view: DatasetView) -> Iterator[np.ndarray]:
        """Yield the raw approx increment of every iteration on ``view``.

        Summing the first ``k`` increments gives the model's prediction after
        ``k`` iterations; the first increment includes the starting value.
        """
        ...


@dataclass
class TrainOutput:
    model: Any
    metric_values_on_train: List[float] = field(default_factory=list)
    # iterations x metrics; empty when no test view was given
    metric_values_on_test: List[List[float]] = field(default_factory=list)


class Trainer(Protocol):
    def train(
        self,
        *,
        options: BoostingModel,
        learn: DatasetView,
        test: Optional[DatasetView],
        metrics: Sequence[Metric],
        callbacks: TrainingCallbacks,
        random_seed: int,
    ) -> TrainOutput:
        """Train one model on ``learn``; evaluate ``metrics`` on ``test`` per iteration."""
        ...


class FeatureStrengthCalculator(Protocol):
    def calc(self, model: Any, view: DatasetView) -> Tuple[List[Tuple[float, int]], np.ndarray]:
        """Return (strengths sorted by value, full-length per-feature strengths)."""
        ...
