"""Configuration contracts.

Pydantic models and Literal-based choice types used to validate feature
evaluation options. Prefer explicit module imports:

    from feature_eval.contracts.run_config import FeatureEvalRunConfig

The names re-exported here are a small convenience namespace.
"""

from .boosting_configs import BoostingModel
from .cv_configs import CvPartitionModel
from .eval_configs import FeatureEvalModel
from .output_configs import OutputModel, SystemModel
from .run_config import FeatureEvalRunConfig
from .types import (
    CvTypeName,
    EvalModeName,
    FeatureStorage,
    FstrTypeName,
    LossFunctionName,
    MetricDirection,
    MetricName,
    SamplingUnitName,
    SignificanceTestName,
    TrainingKind,
)

__all__ = [
    # choice types
    "CvTypeName",
    "EvalModeName",
    "FeatureStorage",
    "FstrTypeName",
    "LossFunctionName",
    "MetricDirection",
    "MetricName",
    "SamplingUnitName",
    "SignificanceTestName",
    "TrainingKind",
    # configs
    "BoostingModel",
    "CvPartitionModel",
    "FeatureEvalModel",
    "OutputModel",
    "SystemModel",
    "FeatureEvalRunConfig",
]
