from __future__ import annotations

"""Ignored-feature selection per evaluation mode and training role.

Modes:

- ``OneVsAll``: baseline uses every feature; testing drops the other tested
  sets and keeps the current one.
- ``OneVsOthers``: baseline drops the current set; testing drops the other
  tested sets. Every set gets its own baseline.
- ``OthersVsAll``: baseline uses every feature; testing drops the current set.
- ``OneVsNone``: baseline drops every tested set; testing drops the other
  tested sets.
"""

import logging
from typing import Callable, Dict, List, Sequence

import numpy as np

from feature_eval.components.splitters.types import FoldsData
from feature_eval.contracts.types import EvalModeName, TrainingKind
from feature_eval.errors import FeatureEvalConfigError

logger = logging.getLogger(__name__)

FeatureSets = Sequence[Sequence[int]]

EVAL_MODES: tuple[str, ...] = ("OneVsAll", "OneVsOthers", "OthersVsAll", "OneVsNone")


def _union(feature_sets: FeatureSets) -> set[int]:
    out: set[int] = set()
    for fs in feature_sets:
        out.update(int(f) for f in fs)
    return out


def _baseline_full(feature_sets: FeatureSets, set_idx: int) -> set[int]:
    return set()


def _baseline_without_current(feature_sets: FeatureSets, set_idx: int) -> set[int]:
    return {int(f) for f in feature_sets[set_idx]}


def _baseline_without_all(feature_sets: FeatureSets, set_idx: int) -> set[int]:
    return _union(feature_sets)


def _testing_without_current(feature_sets: FeatureSets, set_idx: int) -> set[int]:
    return {int(f) for f in feature_sets[set_idx]}


def _testing_without_others(feature_sets: FeatureSets, set_idx: int) -> set[int]:
    return _union(feature_sets) - {int(f) for f in feature_sets[set_idx]}


Selector = Callable[[FeatureSets, int], set]

_BASELINE: Dict[str, Selector] = {
    "OneVsAll": _baseline_full,
    "OthersVsAll": _baseline_full,
    "OneVsOthers": _baseline_without_current,
    "OneVsNone": _baseline_without_all,
}

_TESTING: Dict[str, Selector] = {
    "OneVsAll": _testing_without_others,
    "OneVsOthers": _testing_without_others,
    "OneVsNone": _testing_without_others,
    "OthersVsAll": _testing_without_current,
}


def uses_common_baseline(mode: EvalModeName) -> bool:
    """Whether one baseline (trained for set 0) serves every feature set."""
    return mode != "OneVsOthers"


def ignored_features(
    mode: EvalModeName,
    feature_sets: FeatureSets,
    role: TrainingKind,
    set_idx: int,
) -> List[int]:
    """Sorted feature indices to ignore on top of the dataset's own ignored ones."""
    table = _TESTING if role == "Testing" else _BASELINE
    selector = table.get(mode)
    if selector is None:
        raise FeatureEvalConfigError(f"Unknown feature evaluation mode {mode!r}")
    if not 0 <= set_idx < len(feature_sets):
        raise FeatureEvalConfigError(
            f"Feature set index {set_idx} out of range for {len(feature_sets)} feature sets"
        )
    return sorted(selector(feature_sets, set_idx))


def describe_selection(role: TrainingKind, set_idx: int, ignored: Sequence[int]) -> str:
    msg = f"Feature set {set_idx}, {'baseline' if role == 'Baseline' else 'testing'}"
    if not ignored:
        return msg + ", no additional ignored features"
    return msg + ", additional ignored features " + ":".join(str(f) for f in ignored)


def restrict_folds(
    folds: FoldsData,
    *,
    mode: EvalModeName,
    feature_sets: FeatureSets,
    role: TrainingKind,
    set_idx: int,
) -> FoldsData:
    """Fold data of every fold in the range with the role's features ignored."""
    ignored = ignored_features(mode, feature_sets, role, set_idx)
    logger.info(describe_selection(role, set_idx, ignored))
    return folds.with_ignored_features(ignored)


def has_features_to_evaluate(baseline: FoldsData, testing: FoldsData) -> bool:
    """Whether testing data differs from baseline data in any fold.

    False when some testing fold has no usable feature at all, or when the
    usable (not ignored, not constant) features of baseline and testing are
    the same in every fold.
    """
    if not all(f.learn.has_available_features() for f in testing.folds):
        return False
    return any(
        not np.array_equal(b.learn.available_features(), t.learn.available_features())
        for b, t in zip(baseline.folds, testing.folds)
    )
