from __future__ import annotations

from typing import List, Sequence

import numpy as np

from feature_eval.components.data.dataset import DatasetView
from feature_eval.components.interfaces import BoostedModel, Metric
from feature_eval.errors import InternalConsistencyError


def calc_metrics_for_test(
    model: BoostedModel,
    view: DatasetView,
    metrics: Sequence[Metric],
) -> List[List[float]]:
    """Apply ``model`` to ``view`` one iteration at a time.

    Returns one row per iteration with the value of every metric for the
    prediction accumulated so far.
    """
    approx = None
    history: List[List[float]] = []
    for delta in model.iter_approx_deltas(view):
        if approx is None:
            approx = np.array(delta, dtype=float, copy=True)
        else:
            approx += delta
        history.append([metric.evaluate(approx, view.target) for metric in metrics])

    if len(history) != model.tree_count:
        raise InternalConsistencyError(
            f"Applied {len(history)} iterations, but the model has {model.tree_count} trees"
        )
    return history
