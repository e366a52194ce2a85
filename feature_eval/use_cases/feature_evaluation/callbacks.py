from __future__ import annotations

import logging
import time
from typing import BinaryIO, Optional, Sequence

from feature_eval.components.evaluation.summary import FeatureEvaluationSummary
from feature_eval.contracts.eval_configs import FeatureEvalModel
from feature_eval.errors import SnapshotMismatchError
from feature_eval.io.snapshot import (
    dump_evaluation_state,
    evaluation_stream,
    load_evaluation_state,
    read_snapshot,
)

from .progress import ResumeProgress, ResumeTracker

logger = logging.getLogger(__name__)


class FeatureEvaluationCallbacks:
    """Training callbacks of a feature evaluation.

    Besides the training heartbeat, the callbacks carry the evaluation state
    into and out of trainer snapshots: the summary accumulated so far and the
    unit being trained. A snapshot is accepted at most once per
    :meth:`load_snapshot`, by the first unit that is not skipped.
    """

    heartbeat_seconds = 1.0

    def __init__(
        self,
        iteration_count: int,
        options: FeatureEvalModel,
        summary: FeatureEvaluationSummary,
        tracker: Optional[ResumeTracker] = None,
    ) -> None:
        self.iteration_count = int(iteration_count)
        self.options = options
        self.summary = summary
        self.tracker = tracker if tracker is not None else ResumeTracker()
        self.iteration_idx = 0
        self._last_heartbeat = time.perf_counter()

    # --- training hooks ----------------------------------------------------

    def reset_iteration_index(self) -> None:
        self.iteration_idx = 0

    def is_continue_training(self, history: Sequence[float]) -> bool:
        self.iteration_idx += 1
        now = time.perf_counter()
        if now - self._last_heartbeat > self.heartbeat_seconds:
            logger.info("Train iteration %d of %d", self.iteration_idx, self.iteration_count)
            self._last_heartbeat = now
        return True

    def on_save_snapshot(self, stream: BinaryIO) -> None:
        dump_evaluation_state(
            stream,
            summary=self.summary,
            progress=self.tracker.current,
            options=self.options.model_dump(),
        )

    def on_load_snapshot(self, stream: BinaryIO) -> bool:
        if not self.tracker.armed:
            return False
        summary, progress, options = load_evaluation_state(stream)
        if FeatureEvalModel.model_validate(options) != self.options:
            raise SnapshotMismatchError(
                "Current feature evaluation options differ from options in snapshot"
            )
        if not isinstance(summary, FeatureEvaluationSummary):
            raise SnapshotMismatchError("Snapshot holds no feature evaluation summary")
        self.summary = summary
        self.tracker.restore(progress)
        self.tracker.consume()
        return True

    # --- resume ------------------------------------------------------------

    def load_snapshot(self, path: str) -> None:
        """Restore the evaluation state and let the next trained unit resume its model."""
        self.tracker.arm()
        self.on_load_snapshot(evaluation_stream(read_snapshot(path)))
        self.tracker.arm()

    def set_progress(self, progress: ResumeProgress) -> None:
        self.tracker.mark(progress)

    def have_eval_feature_summary(
        self,
        fold_range_begin: int,
        feature_set_idx: int,
        is_test: bool,
        fold_idx: int,
    ) -> bool:
        return self.tracker.should_skip(
            ResumeProgress(fold_range_begin, feature_set_idx, bool(is_test), fold_idx)
        )
