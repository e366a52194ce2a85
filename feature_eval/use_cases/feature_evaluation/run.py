from __future__ import annotations

"""Feature evaluation orchestration (Engine use-case).

The evaluation answers "does this set of features improve the model?" by
training pairs of models, a baseline and a tested one, on many disjoint folds
and comparing their best per-fold metric values:

- run: validation, fold window planning, resume, final statistics
- orchestrator: partitioning of one fold range and training of its units
- callbacks / progress: trainer hooks and the resume state machine

Units are trained strictly one after another; only fold materialization runs
in parallel.
"""

import os
import warnings
from typing import List, Optional

from feature_eval.components.data.dataset import Dataset
from feature_eval.components.evaluation.strength import ImpurityFeatureStrength
from feature_eval.components.evaluation.summary import FeatureEvaluationSummary
from feature_eval.components.features.selection import uses_common_baseline
from feature_eval.components.interfaces import FeatureStrengthCalculator, Trainer
from feature_eval.components.splitters.materialize import parse_memory_size
from feature_eval.components.splitters.partition import sampling_unit_count, time_split_population
from feature_eval.components.splitters.types import FoldRangeSegment
from feature_eval.components.splitters.windows import count_disjoint_folds, plan_fold_ranges
from feature_eval.components.trainers.labels import encode_labels
from feature_eval.contracts.run_config import FeatureEvalRunConfig
from feature_eval.core.progress import ProgressCallback
from feature_eval.errors import FeatureEvalConfigError, FoldCapacityError
from feature_eval.factories.metrics_factory import make_metrics
from feature_eval.factories.training_factory import make_default_trainer, snapshot_path
from feature_eval.runtime.random.rng import RngManager
from feature_eval.use_cases._deps import resolve_seed

from .callbacks import FeatureEvaluationCallbacks
from .orchestrator import evaluate_fold_range
from .types import EvaluationContext


def _validate(cfg: FeatureEvalRunConfig, dataset: Dataset) -> int:
    fe = cfg.feature_eval
    fold_count = cfg.cv.fold_count if cfg.cv.fold_count is not None else fe.fold_count
    if fold_count <= 0:
        raise FeatureEvalConfigError("Fold count must be positive integer")
    if dataset.objects_order == "ordered":
        raise FeatureEvalConfigError("Feature evaluation for ordered objects data is not yet implemented")
    if dataset.object_count <= fold_count or dataset.object_count <= fe.fold_size:
        raise FoldCapacityError("Pool is too small to be split into folds")
    for set_idx, feature_set in enumerate(fe.features_to_evaluate):
        for f in feature_set:
            if not 0 <= f < dataset.feature_count:
                raise FeatureEvalConfigError(
                    f"Feature set {set_idx} refers to feature {f}, but dataset has "
                    f"{dataset.feature_count} features"
                )
    return fold_count


def _plan(cfg: FeatureEvalRunConfig, dataset: Dataset, rngm: RngManager) -> List[FoldRangeSegment]:
    fe = cfg.feature_eval
    if cfg.cv.fold_count is not None:
        # explicit k-fold: one range covering the whole dataset
        return [
            FoldRangeSegment(
                fold_range_index=0,
                fold_range_begin=0,
                fold_size=0,
                offset_in_range=0,
                fold_count=cfg.cv.fold_count,
                random_seed=rngm.fold_range_seeds(1)[0],
            )
        ]
    if dataset.has_timestamp:
        population = time_split_population(dataset, fe.time_split_quantile, fe.fold_size_unit)
    else:
        population = sampling_unit_count(dataset, fe.fold_size_unit)
    absolute_fold_size, disjoint_fold_count = count_disjoint_folds(
        population,
        fold_size=fe.fold_size,
        relative_fold_size=fe.relative_fold_size,
    )
    return plan_fold_ranges(
        absolute_fold_size=absolute_fold_size,
        disjoint_fold_count=disjoint_fold_count,
        offset=fe.offset,
        fold_count=fe.fold_count,
        rngm=rngm,
        population=population,
        shuffle=cfg.cv.shuffle,
    )


def _unit_count(cfg: FeatureEvalRunConfig, segments: List[FoldRangeSegment]) -> int:
    sets = len(cfg.feature_eval.features_to_evaluate)
    folds = sum(s.fold_count for s in segments)
    if sets == 0:
        return folds
    baselines = 1 if uses_common_baseline(cfg.feature_eval.feature_eval_mode) else sets
    return folds * (baselines + sets)


def evaluate_features(
    run_config: FeatureEvalRunConfig,
    dataset: Dataset,
    *,
    trainer: Optional[Trainer] = None,
    feature_strength: Optional[FeatureStrengthCalculator] = None,
    progress: Optional[ProgressCallback] = None,
) -> FeatureEvaluationSummary:
    cfg = run_config.model_copy(deep=True)

    if cfg.output.metric_period != 1:
        warnings.warn(
            f"Feature evaluation requires metric_period=1; ignoring metric_period={cfg.output.metric_period}",
            UserWarning,
        )
        cfg.output.metric_period = 1

    # --- Checks ------------------------------------------------------------
    _validate(cfg, dataset)

    class_count = None
    if cfg.boosting.task == "classification":
        classes, y_enc = encode_labels(dataset.target)
        class_count = int(classes.shape[0])
        if class_count < 2:
            raise FeatureEvalConfigError("Classification target must contain at least two classes")
        if cfg.boosting.loss_function == "Logloss" and class_count > 2:
            raise FeatureEvalConfigError(
                f"Logloss needs a binary target, got {class_count} classes; use MultiClass"
            )
        dataset = dataset.with_target(y_enc)

    metrics = make_metrics(cfg.boosting)

    # --- Fold windows ------------------------------------------------------
    rngm = RngManager(resolve_seed(cfg.random_seed))
    segments = _plan(cfg, dataset, rngm)

    # --- Callbacks / resume ------------------------------------------------
    summary = FeatureEvaluationSummary(significance_test=cfg.significance_test)
    callbacks = FeatureEvaluationCallbacks(cfg.boosting.iterations, cfg.feature_eval, summary)
    if cfg.output.save_snapshot:
        path = snapshot_path(cfg.output)
        if os.path.exists(path):
            callbacks.load_snapshot(path)

    if trainer is None:
        trainer = make_default_trainer(cfg.output, class_count=class_count)
    if feature_strength is None and cfg.output.fstr_type is not None:
        feature_strength = ImpurityFeatureStrength()

    ctx = EvaluationContext(
        cfg=cfg,
        trainer=trainer,
        metrics=metrics,
        callbacks=callbacks,
        feature_strength=feature_strength,
        used_ram_limit=parse_memory_size(cfg.system.used_ram_limit),
        progress=progress,
    )

    if progress is not None:
        progress.init(total=_unit_count(cfg, segments), label=ctx.progress_label)
    try:
        for segment in segments:
            evaluate_fold_range(ctx, dataset, segment)
    finally:
        if progress is not None:
            progress.finalize(label=ctx.progress_label)

    result = callbacks.summary
    result.significance_test = cfg.significance_test
    result.calc_wx_test_and_average_delta()
    return result
