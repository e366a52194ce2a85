from __future__ import annotations

"""Significance tests comparing baseline and tested per-fold metric samples."""

from typing import Callable, Dict, Sequence

import numpy as np
from scipy import stats

from feature_eval.contracts.types import SignificanceTestName


def wilcoxon_rank_sum(baseline: Sequence[float], tested: Sequence[float]) -> float:
    """Two-sided Wilcoxon rank-sum p-value; identical samples give 1."""
    a = np.asarray(baseline, dtype=float)
    b = np.asarray(tested, dtype=float)
    if a.size == 0 or b.size == 0:
        return 1.0
    if a.shape == b.shape and np.array_equal(a, b):
        return 1.0
    p = float(stats.ranksums(a, b).pvalue)
    return 1.0 if np.isnan(p) else p


def wilcoxon_signed_rank(baseline: Sequence[float], tested: Sequence[float]) -> float:
    """Two-sided paired Wilcoxon signed-rank p-value over folds.

    Fewer than two non-zero differences carry no evidence and give 1.
    """
    a = np.asarray(baseline, dtype=float)
    b = np.asarray(tested, dtype=float)
    if a.shape != b.shape:
        raise ValueError(
            f"Paired test needs equally long samples: {a.shape[0]} vs {b.shape[0]}"
        )
    diff = b - a
    if np.count_nonzero(diff) < 2:
        return 1.0
    p = float(stats.wilcoxon(a, b, zero_method="wilcox").pvalue)
    return 1.0 if np.isnan(p) else p


SIGNIFICANCE_TESTS: Dict[str, Callable[[Sequence[float], Sequence[float]], float]] = {
    "rank_sum": wilcoxon_rank_sum,
    "signed_rank": wilcoxon_signed_rank,
}


def significance_test(name: SignificanceTestName) -> Callable[[Sequence[float], Sequence[float]], float]:
    try:
        return SIGNIFICANCE_TESTS[name]
    except KeyError:
        raise ValueError(f"Unknown significance test {name!r}") from None
