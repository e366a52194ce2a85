from __future__ import annotations

"""Per-fold results of a feature evaluation and their reduction to statistics.

Most containers are indexed ``[is_test][feature_set_idx][fold]`` where
``is_test`` is 0 for baseline models and 1 for models trained with the
feature set under evaluation.
"""

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np

from feature_eval.components.evaluation.significance import significance_test
from feature_eval.components.interfaces import Metric
from feature_eval.contracts.types import MetricDirection, SignificanceTestName
from feature_eval.errors import FeatureEvalConfigError, InternalConsistencyError

# iterations x metrics
MetricsHistory = List[List[float]]
FeatureStrength = List[Tuple[float, int]]


def _metric_directions(metrics: Sequence[Metric]) -> List[MetricDirection]:
    directions: List[MetricDirection] = []
    for metric in metrics:
        direction, _ = metric.best_value()
        if direction not in ("Min", "Max"):
            raise FeatureEvalConfigError(
                f"Metric {metric.name} has neither lower, nor upper bound"
            )
        directions.append(direction)
    return directions


def get_best_iteration_in_fold(
    metric_types: Sequence[MetricDirection],
    metric_values: Sequence[Sequence[float]],
) -> int:
    """Iteration with the best value of the first metric; earliest wins ties."""
    best = 0
    minimize = metric_types[0] == "Min"
    for iteration in range(1, len(metric_values)):
        value = metric_values[iteration][0]
        current = metric_values[best][0]
        if (value < current) if minimize else (value > current):
            best = iteration
    return best


def _rank3(outer: int) -> List[List[list]]:
    return [[[] for _ in range(outer)] for _ in range(2)]


@dataclass
class FeatureEvaluationSummary:
    """Accumulated evaluation results; also the unit persisted in snapshots."""

    significance_test: SignificanceTestName = "rank_sum"

    metric_names: List[str] = field(default_factory=list)
    metric_types: List[MetricDirection] = field(default_factory=list)
    feature_sets: List[List[int]] = field(default_factory=list)

    metrics_history: List[List[List[MetricsHistory]]] = field(default_factory=list)
    feature_strengths: List[List[List[FeatureStrength]]] = field(default_factory=list)
    regular_feature_strengths: List[List[List[List[float]]]] = field(default_factory=list)
    # [is_test][set][metric] -> best value in every fold
    best_metrics: List[List[List[List[float]]]] = field(default_factory=list)
    best_baseline_iterations: List[List[int]] = field(default_factory=list)

    wx_test: List[float] = field(default_factory=list)
    average_metric_delta: List[List[float]] = field(default_factory=list)

    @property
    def feature_set_count(self) -> int:
        return max(1, len(self.feature_sets))

    def has_header_info(self) -> bool:
        return bool(self.metric_names)

    def set_header_info(self, metrics: Sequence[Metric], feature_sets: Sequence[Sequence[int]]) -> None:
        """Record metric names/directions and size every container.

        Setting the header again with the same metrics and feature sets is a
        no-op; anything else is rejected.
        """
        types = _metric_directions(metrics)
        names = [m.name for m in metrics]
        sets = [[int(f) for f in fs] for fs in feature_sets]
        if self.has_header_info():
            if names != self.metric_names or types != self.metric_types or sets != self.feature_sets:
                raise FeatureEvalConfigError(
                    f"Summary already holds results for metrics {self.metric_names} "
                    f"and feature sets {self.feature_sets}; got metrics {names} and feature sets {sets}"
                )
            return

        self.metric_types = types
        self.metric_names = names
        self.feature_sets = sets
        n = self.feature_set_count
        self.metrics_history = _rank3(n)
        self.feature_strengths = _rank3(n)
        self.regular_feature_strengths = _rank3(n)
        self.best_metrics = _rank3(n)
        self.best_baseline_iterations = [[] for _ in range(n)]

    def append_feature_set_metrics(
        self,
        is_test: bool,
        feature_set_idx: int,
        metric_values: Sequence[Sequence[float]],
    ) -> None:
        """Record the best-iteration metric values of one fold."""
        if not self.has_header_info():
            raise InternalConsistencyError("Summary header must be set before results are appended")
        if feature_set_idx >= self.feature_set_count:
            raise InternalConsistencyError("Feature set index is too large")
        if len(metric_values) == 0:
            raise InternalConsistencyError("No metric values in fold")

        best_iteration = get_best_iteration_in_fold(self.metric_types, metric_values)
        if not is_test:
            self.best_baseline_iterations[feature_set_idx].append(best_iteration)

        per_metric = self.best_metrics[int(is_test)][feature_set_idx]
        while len(per_metric) < len(self.metric_types):
            per_metric.append([])
        for metric_idx in range(len(self.metric_types)):
            per_metric[metric_idx].append(float(metric_values[best_iteration][metric_idx]))

    def calc_wx_test_and_average_delta(self) -> None:
        """Fill ``wx_test`` and ``average_metric_delta`` for every feature set.

        A positive delta always means the tested models are better than the
        baseline ones.
        """
        test = significance_test(self.significance_test)
        self.wx_test = []
        self.average_metric_delta = []
        for set_idx in range(self.feature_set_count):
            baseline = self.best_metrics[0][set_idx]
            tested = baseline if not self.feature_sets else self.best_metrics[1][set_idx]
            if not baseline or not tested or not baseline[0]:
                raise InternalConsistencyError(f"No results for feature set {set_idx}")

            self.wx_test.append(test(baseline[0], tested[0]))

            deltas = []
            for metric_idx, direction in enumerate(self.metric_types):
                baseline_avg = float(np.mean(baseline[metric_idx]))
                tested_avg = float(np.mean(tested[metric_idx]))
                if direction == "Min":
                    deltas.append(baseline_avg - tested_avg)
                else:
                    deltas.append(tested_avg - baseline_avg)
            self.average_metric_delta.append(deltas)

    def copy_baseline_results(self, feature_set_idx: int) -> None:
        """Reuse the common (set 0) baseline for another feature set."""
        self.best_metrics[0][feature_set_idx] = [list(v) for v in self.best_metrics[0][0]]
        self.best_baseline_iterations[feature_set_idx] = list(self.best_baseline_iterations[0])

    def use_baseline_as_tested(self, feature_set_idx: int, baseline_idx: int) -> None:
        """Stand in baseline results for a feature set whose testing data equals the baseline."""
        self.metrics_history[1][feature_set_idx] = list(self.metrics_history[0][baseline_idx])
        self.feature_strengths[1][feature_set_idx] = list(self.feature_strengths[0][baseline_idx])
        self.regular_feature_strengths[1][feature_set_idx] = list(
            self.regular_feature_strengths[0][baseline_idx]
        )
        self.best_metrics[1][feature_set_idx] = [list(v) for v in self.best_metrics[0][baseline_idx]]
