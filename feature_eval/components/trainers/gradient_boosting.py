from __future__ import annotations

"""Resumable gradient boosting on top of scikit-learn's tree ensembles.

The ensemble is grown with ``warm_start`` in chunks of iterations. Between two
chunks the trainer may write a snapshot (the partial ensemble plus whatever
state the training callbacks add), so an interrupted evaluation can resume the
model it was building instead of starting it over.
"""

import logging
import os
import time
from dataclasses import dataclass
from io import BytesIO
from typing import Any, Iterator, Optional, Sequence

import numpy as np
from sklearn.ensemble import GradientBoostingClassifier, GradientBoostingRegressor

from feature_eval.components.data.dataset import DatasetView
from feature_eval.components.evaluation.apply import calc_metrics_for_test
from feature_eval.components.interfaces import Metric, TrainingCallbacks, TrainOutput
from feature_eval.contracts.boosting_configs import BoostingModel
from feature_eval.errors import SnapshotMismatchError
from feature_eval.io.snapshot import evaluation_stream, read_snapshot, write_snapshot

logger = logging.getLogger(__name__)

_SKLEARN_LOSS = {
    "RMSE": "squared_error",
    "MAE": "absolute_error",
    "Logloss": "log_loss",
    "MultiClass": "log_loss",
}

# raw score for classes the fold's learn part has never seen
_ABSENT_CLASS_SCORE = -1e9


def make_estimator(options: BoostingModel, random_seed: int) -> Any:
    params = dict(
        loss=_SKLEARN_LOSS[options.loss_function],
        n_estimators=options.iterations,
        learning_rate=options.learning_rate,
        max_depth=options.depth,
        subsample=options.subsample,
        min_samples_leaf=options.min_data_in_leaf,
        random_state=int(random_seed),
        warm_start=True,
    )
    if options.task == "classification":
        return GradientBoostingClassifier(**params)
    return GradientBoostingRegressor(**params)


def _tree_count(estimator: Any) -> int:
    trees = getattr(estimator, "estimators_", None)
    return 0 if trees is None else int(trees.shape[0])


@dataclass
class GradientBoostingModel:
    """A fitted ensemble seen as a sequence of per-iteration approx increments."""

    estimator: Any
    class_count: Optional[int] = None

    @property
    def tree_count(self) -> int:
        return _tree_count(self.estimator)

    def _staged_raw(self, view: DatasetView) -> Iterator[np.ndarray]:
        X = view.training_matrix()
        if isinstance(self.estimator, GradientBoostingClassifier):
            return self.estimator.staged_decision_function(X)
        return self.estimator.staged_predict(X)

    def _expand(self, raw: np.ndarray) -> np.ndarray:
        if raw.ndim == 2 and raw.shape[1] == 1:
            raw = raw.ravel()
        classes = getattr(self.estimator, "classes_", None)
        if classes is None or self.class_count is None or self.class_count <= 2:
            return raw
        if raw.ndim == 1:
            raw = np.column_stack([np.zeros_like(raw), raw])
        if raw.shape[1] == self.class_count:
            return raw
        full = np.full((raw.shape[0], self.class_count), _ABSENT_CLASS_SCORE)
        full[:, np.asarray(classes, dtype=int)] = raw
        return full

    def iter_approx_deltas(self, view: DatasetView) -> Iterator[np.ndarray]:
        prev = None
        for raw in self._staged_raw(view):
            cur = self._expand(np.asarray(raw, dtype=float))
            yield cur.copy() if prev is None else cur - prev
            prev = cur

    def feature_importances(self) -> np.ndarray:
        return np.asarray(self.estimator.feature_importances_, dtype=float)


class _Monitor:
    """sklearn ``monitor`` hook forwarding every iteration to the callbacks."""

    def __init__(self, callbacks: TrainingCallbacks) -> None:
        self.callbacks = callbacks
        self.stopped = False

    def __call__(self, i: int, estimator: Any, _locals: Any) -> bool:
        history = estimator.train_score_[: i + 1]
        if not self.callbacks.is_continue_training(history):
            self.stopped = True
        return self.stopped


class GradientBoostingTrainer:
    """Trains one boosted model per call; optionally snapshots its progress."""

    def __init__(
        self,
        *,
        class_count: Optional[int] = None,
        snapshot_path: Optional[str] = None,
        snapshot_interval: float = 600.0,
        chunk_iterations: int = 10,
    ) -> None:
        self.class_count = class_count
        self.snapshot_path = snapshot_path
        self.snapshot_interval = float(snapshot_interval)
        self.chunk_iterations = max(1, int(chunk_iterations))

    # --- snapshots ---------------------------------------------------------

    def _save(self, estimator: Any, callbacks: TrainingCallbacks, random_seed: int) -> None:
        buf = BytesIO()
        callbacks.on_save_snapshot(buf)
        write_snapshot(
            self.snapshot_path,
            trainer={"estimator": estimator, "random_seed": int(random_seed)},
            evaluation=buf.getvalue(),
        )

    def _restore(self, callbacks: TrainingCallbacks, random_seed: int, iterations: int) -> Optional[Any]:
        if self.snapshot_path is None or not os.path.exists(self.snapshot_path):
            return None
        package = read_snapshot(self.snapshot_path)
        if not callbacks.on_load_snapshot(evaluation_stream(package)):
            return None
        state = package.trainer
        if not state or state.get("estimator") is None:
            return None
        if int(state.get("random_seed", -1)) != int(random_seed):
            raise SnapshotMismatchError("Snapshot holds a model trained with a different random seed")
        estimator = state["estimator"]
        if _tree_count(estimator) > iterations:
            raise SnapshotMismatchError(
                f"Snapshot model has {_tree_count(estimator)} trees, more than {iterations} iterations"
            )
        logger.info("Resuming model with %d trees from snapshot", _tree_count(estimator))
        return estimator

    # --- training ----------------------------------------------------------

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
        X = learn.training_matrix()
        y = learn.target
        total = int(options.iterations)

        estimator = self._restore(callbacks, random_seed, total)
        if estimator is None:
            estimator = make_estimator(options, random_seed)

        chunk = total if self.snapshot_path is None else self.chunk_iterations
        monitor = _Monitor(callbacks)
        last_save = time.perf_counter()
        while not monitor.stopped and _tree_count(estimator) < total:
            estimator.set_params(n_estimators=min(total, _tree_count(estimator) + chunk))
            estimator.fit(X, y, monitor=monitor)
            if self.snapshot_path is not None and time.perf_counter() - last_save >= self.snapshot_interval:
                self._save(estimator, callbacks, random_seed)
                last_save = time.perf_counter()
        if self.snapshot_path is not None:
            self._save(estimator, callbacks, random_seed)

        model = GradientBoostingModel(estimator=estimator, class_count=self.class_count)
        out = TrainOutput(
            model=model,
            metric_values_on_train=[float(v) for v in estimator.train_score_],
        )
        if test is not None:
            out.metric_values_on_test = calc_metrics_for_test(model, test, metrics)
        return out
