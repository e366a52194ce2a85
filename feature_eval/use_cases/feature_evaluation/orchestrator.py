from __future__ import annotations

"""Training of every (feature set, role, fold) unit of one fold range."""

import logging
import time
import warnings

import numpy as np

from feature_eval.components.data.dataset import Dataset
from feature_eval.components.evaluation.apply import calc_metrics_for_test
from feature_eval.components.features.selection import (
    has_features_to_evaluate,
    restrict_folds,
    uses_common_baseline,
)
from feature_eval.components.splitters.materialize import create_fold_data
from feature_eval.components.splitters.partition import partition_cv_folds, partition_time_split_folds
from feature_eval.components.splitters.types import FoldRangeSegment, FoldsData
from feature_eval.errors import InternalConsistencyError
from feature_eval.runtime.random.rng import draw_seed

from .progress import ResumeProgress
from .types import EvaluationContext, FoldContext

logger = logging.getLogger(__name__)


def train_full_models(
    ctx: EvaluationContext,
    *,
    segment: FoldRangeSegment,
    offset_in_range: int,
    is_test: bool,
    feature_set_idx: int,
    folds: FoldsData,
    rng: np.random.Generator,
) -> None:
    """Train (or skip, when resuming) one model per fold and record its results."""
    cfg = ctx.cfg
    callbacks = ctx.callbacks
    for fold_idx in range(folds.fold_count):
        # drawn for skipped units too, so resumed runs see the same seeds
        seed = draw_seed(rng)
        fold_in_range = offset_in_range + fold_idx
        if callbacks.have_eval_feature_summary(segment.fold_range_begin, feature_set_idx, is_test, fold_in_range):
            ctx.tick()
            continue

        start = time.perf_counter()
        fold = FoldContext(
            fold_idx=segment.fold_range_begin + fold_in_range,
            training_data=folds.folds[fold_idx],
            random_seed=seed,
        )
        callbacks.set_progress(
            ResumeProgress(segment.fold_range_begin, feature_set_idx, is_test, fold_in_range)
        )
        callbacks.reset_iteration_index()

        out = ctx.trainer.train(
            options=cfg.boosting,
            learn=fold.training_data.learn,
            test=fold.training_data.test,
            metrics=ctx.metrics,
            callbacks=callbacks,
            random_seed=seed,
        )
        fold.full_model = out.model
        fold.metric_values_on_train = list(out.metric_values_on_train)
        fold.metric_values_on_test = list(out.metric_values_on_test)

        test_view = folds.test_view(fold_idx)
        if test_view is not None:
            if fold.full_model is None:
                raise InternalConsistencyError(f"No model in fold {fold.fold_idx}")
            tree_count = fold.full_model.tree_count
            if len(fold.metric_values_on_train) != tree_count:
                raise InternalConsistencyError(
                    f"Fold {fold.fold_idx}: model size ({tree_count}) differs from "
                    f"iteration count ({len(fold.metric_values_on_train)})"
                )
            fold.metric_values_on_test = calc_metrics_for_test(fold.full_model, test_view, ctx.metrics)

        if not fold.metric_values_on_test:
            raise InternalConsistencyError(f"No test metric values in fold {fold.fold_idx}")

        # the trainer may have swapped in a summary restored from a snapshot
        summary = callbacks.summary
        summary.metrics_history[int(is_test)][feature_set_idx].append(fold.metric_values_on_test)
        summary.append_feature_set_metrics(is_test, feature_set_idx, fold.metric_values_on_test)

        logger.info("Fold %d: model built in %.2f sec", fold.fold_idx, time.perf_counter() - start)

        if ctx.feature_strength is not None:
            strengths, regular = ctx.feature_strength.calc(fold.full_model, fold.training_data.learn)
            summary.feature_strengths[int(is_test)][feature_set_idx].append(strengths)
            if cfg.output.regular_fstr:
                summary.regular_feature_strengths[int(is_test)][feature_set_idx].append(
                    [float(v) for v in regular]
                )

        folds.folds[fold_idx] = fold.training_data
        ctx.tick()


def _partition(ctx: EvaluationContext, dataset: Dataset, segment: FoldRangeSegment):
    cfg = ctx.cfg
    fe = cfg.feature_eval
    if dataset.has_timestamp:
        return partition_time_split_folds(
            dataset,
            fold_size=segment.fold_size,
            fold_size_unit=fe.fold_size_unit,
            quantile=fe.time_split_quantile,
            offset=segment.offset_in_range,
            fold_count=segment.fold_count,
        )
    return partition_cv_folds(
        dataset,
        fold_size=segment.fold_size,
        fold_size_unit=fe.fold_size_unit,
        offset=segment.offset_in_range,
        fold_count=segment.fold_count,
        cv_type=cfg.cv.type,
        explicit_fold_count=cfg.cv.fold_count,
    )


def evaluate_fold_range(ctx: EvaluationContext, dataset: Dataset, segment: FoldRangeSegment) -> None:
    """Partition the dataset for one fold range and train all its units."""
    cfg = ctx.cfg
    fe = cfg.feature_eval
    rng = np.random.default_rng(segment.random_seed)

    data = dataset.shuffle_groups(rng) if cfg.cv.shuffle else dataset
    subsets = _partition(ctx, data, segment)
    folds = create_fold_data(
        data,
        subsets,
        used_ram_limit=ctx.used_ram_limit,
        n_jobs=cfg.system.thread_count,
        separate_test=cfg.separate_test_views,
    )

    ctx.callbacks.summary.set_header_info(ctx.metrics, fe.features_to_evaluate)

    offset_in_range = segment.offset_in_range
    feature_sets = fe.features_to_evaluate
    mode = fe.feature_eval_mode

    def run(is_test: bool, set_idx: int, restricted: FoldsData) -> None:
        train_full_models(
            ctx,
            segment=segment,
            offset_in_range=offset_in_range,
            is_test=is_test,
            feature_set_idx=set_idx,
            folds=restricted,
            rng=rng,
        )

    if not feature_sets:
        run(False, 0, folds)
        return

    common_baseline = uses_common_baseline(mode)
    for set_idx in range(len(feature_sets)):
        baseline = restrict_folds(
            folds, mode=mode, feature_sets=feature_sets, role="Baseline", set_idx=set_idx
        )
        if set_idx > 0 and common_baseline:
            ctx.callbacks.summary.copy_baseline_results(set_idx)
        else:
            run(False, set_idx, baseline)

        testing = restrict_folds(
            folds, mode=mode, feature_sets=feature_sets, role="Testing", set_idx=set_idx
        )
        if has_features_to_evaluate(baseline, testing):
            run(True, set_idx, testing)
        else:
            warnings.warn(
                f"Feature set {set_idx} consists of ignored or constant features; "
                "eval feature assumes baseline data = testing data for this feature set",
                UserWarning,
            )
            ctx.callbacks.summary.use_baseline_as_tested(set_idx, 0 if common_baseline else set_idx)
            ctx.tick(folds.fold_count)
