from __future__ import annotations

from typing import List

from feature_eval.components.interfaces import Metric
from feature_eval.contracts.boosting_configs import BoostingModel
from feature_eval.registries.metrics import make_metric


def make_metrics(cfg: BoostingModel) -> List[Metric]:
    """Metrics of an evaluation, primary first.

    The primary metric is ``eval_metric`` or, when unset, the loss itself.
    Custom metrics follow in the given order; duplicates are dropped.
    """
    names: List[str] = [cfg.eval_metric or cfg.loss_function]
    for name in cfg.custom_metrics:
        if name not in names:
            names.append(name)
    return [make_metric(name) for name in names]
