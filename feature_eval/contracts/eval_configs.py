from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from .types import EvalModeName, SamplingUnitName


class FeatureEvalModel(BaseModel):
    """What to evaluate and how to lay out the evaluation folds.

    Two configs compare equal only when every field matches; resumed runs rely
    on that to reject snapshots written with different options.
    """

    features_to_evaluate: List[List[int]] = Field(default_factory=list)
    feature_eval_mode: EvalModeName = "OneVsAll"

    # fold_size == 0 means "derive from relative_fold_size"
    fold_size: int = Field(default=0, ge=0)
    relative_fold_size: float = Field(default=0.0, ge=0.0, le=1.0)
    fold_size_unit: SamplingUnitName = "Group"

    fold_count: int = 1
    offset: int = Field(default=0, ge=0)

    time_split_quantile: float = Field(default=0.95, gt=0.0, lt=1.0)
