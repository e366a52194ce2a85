from __future__ import annotations

"""Tabular views of a feature evaluation summary.

- :func:`summary_to_frame` / :func:`summary_to_tsv`: one row per feature set
  with the p-value, the baseline best iterations and the metric deltas,
- :func:`export_fold_histories`: per-fold metric histories and feature
  strengths, one directory per trained unit.
"""

from pathlib import Path
from typing import List, Sequence, Union

import pandas as pd

from feature_eval.components.evaluation.summary import FeatureEvaluationSummary
from feature_eval.contracts.types import EvalModeName

PathLike = Union[str, Path]

PVALUE_COLUMN = "p-value"
BEST_ITERATIONS_COLUMN = "best iteration in each fold"
FEATURE_SET_COLUMN = "feature set"


def _join(values: Sequence) -> str:
    return ",".join(str(v) for v in values)


def summary_to_frame(summary: FeatureEvaluationSummary) -> pd.DataFrame:
    """One row per feature set; metric columns hold the average deltas."""
    if len(summary.wx_test) != summary.feature_set_count:
        raise ValueError("Summary statistics are not computed; call calc_wx_test_and_average_delta() first")
    rows = []
    for set_idx in range(summary.feature_set_count):
        row = {
            PVALUE_COLUMN: summary.wx_test[set_idx],
            BEST_ITERATIONS_COLUMN: _join(summary.best_baseline_iterations[set_idx]),
        }
        for name, delta in zip(summary.metric_names, summary.average_metric_delta[set_idx]):
            row[name] = delta
        row[FEATURE_SET_COLUMN] = _join(summary.feature_sets[set_idx]) if summary.feature_sets else ""
        rows.append(row)
    columns = [PVALUE_COLUMN, BEST_ITERATIONS_COLUMN, *summary.metric_names, FEATURE_SET_COLUMN]
    return pd.DataFrame(rows, columns=columns)


def summary_to_tsv(summary: FeatureEvaluationSummary) -> str:
    return summary_to_frame(summary).to_csv(sep="\t", index=False)


def fold_dir_name(mode: EvalModeName, has_feature_sets: bool, is_test: bool, feature_set_idx: int, fold_idx: int) -> str:
    if is_test:
        return f"Testing_set_{feature_set_idx}_fold_{fold_idx}"
    if has_feature_sets and mode == "OneVsOthers":
        return f"Baseline_set_{feature_set_idx}_fold_{fold_idx}"
    return f"Baseline_fold_{fold_idx}"


def export_fold_histories(
    summary: FeatureEvaluationSummary,
    train_dir: PathLike,
    *,
    mode: EvalModeName = "OneVsAll",
    offset: int = 0,
) -> List[Path]:
    """Write ``test_error.tsv`` (and strengths, when present) for every fold.

    ``offset`` is the absolute index of the first evaluated fold; fold
    directories are numbered from it. Returns the written files.
    """
    root = Path(train_dir)
    has_sets = bool(summary.feature_sets)
    written: List[Path] = []
    roles = (False, True) if has_sets else (False,)
    for is_test in roles:
        # baselines shared by every set live under set 0
        shared = not is_test and mode != "OneVsOthers"
        set_indices = [0] if shared else range(summary.feature_set_count)
        for set_idx in set_indices:
            histories = summary.metrics_history[int(is_test)][set_idx]
            strengths = summary.feature_strengths[int(is_test)][set_idx]
            regular = summary.regular_feature_strengths[int(is_test)][set_idx]
            for j, history in enumerate(histories):
                fold_dir = root / fold_dir_name(mode, has_sets, is_test, set_idx, offset + j)
                fold_dir.mkdir(parents=True, exist_ok=True)

                frame = pd.DataFrame(history, columns=summary.metric_names)
                frame.insert(0, "iter", range(len(history)))
                path = fold_dir / "test_error.tsv"
                frame.to_csv(path, sep="\t", index=False)
                written.append(path)

                if j < len(strengths):
                    path = fold_dir / "fstr.tsv"
                    pd.DataFrame(strengths[j], columns=["strength", "feature"]).to_csv(
                        path, sep="\t", index=False, header=False
                    )
                    written.append(path)
                if j < len(regular):
                    path = fold_dir / "regular_fstr.tsv"
                    pd.DataFrame({"strength": regular[j], "feature": range(len(regular[j]))}).to_csv(
                        path, sep="\t", index=False, header=False
                    )
                    written.append(path)
    return written
