from __future__ import annotations
from typing import Literal, TypeAlias

# Feature evaluation
EvalModeName: TypeAlias = Literal["OneVsAll", "OneVsOthers", "OthersVsAll", "OneVsNone"]
SamplingUnitName: TypeAlias = Literal["Object", "Group"]
TrainingKind: TypeAlias = Literal["Baseline", "Testing"]

# Cross-validation
CvTypeName: TypeAlias = Literal["Inverted", "Classical"]

# Boosting
LossFunctionName: TypeAlias = Literal["RMSE", "MAE", "Logloss", "MultiClass"]

# Metrics (evaluated on raw approxes)
MetricName: TypeAlias = Literal[
    "RMSE",
    "MAE",
    "R2",
    "Logloss",
    "MultiClass",
    "Accuracy",
    "AUC",
]
MetricDirection: TypeAlias = Literal["Min", "Max", "Undefined"]

# Statistics
SignificanceTestName: TypeAlias = Literal["rank_sum", "signed_rank"]

# Feature strength
FstrTypeName: TypeAlias = Literal["FeatureImportance"]

# Data
FeatureStorage: TypeAlias = Literal["dense", "sparse"]
ObjectsOrder: TypeAlias = Literal["undefined", "ordered"]
