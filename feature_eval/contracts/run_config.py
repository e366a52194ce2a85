from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .boosting_configs import BoostingModel
from .cv_configs import CvPartitionModel
from .eval_configs import FeatureEvalModel
from .output_configs import OutputModel, SystemModel
from .types import SignificanceTestName


class FeatureEvalRunConfig(BaseModel):
    feature_eval: FeatureEvalModel = Field(default_factory=FeatureEvalModel)
    cv: CvPartitionModel = Field(default_factory=CvPartitionModel)
    boosting: BoostingModel = Field(default_factory=BoostingModel)
    output: OutputModel = Field(default_factory=OutputModel)
    system: SystemModel = Field(default_factory=SystemModel)

    random_seed: Optional[int] = None
    # Keep test views apart from the training data and apply finished models
    # to them iteration by iteration.
    separate_test_views: bool = False
    significance_test: SignificanceTestName = "rank_sum"
