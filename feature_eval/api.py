"""Public feature evaluation API.

This module is the **stable public surface** of the package:

    from feature_eval.api import Dataset, FeatureEvalRunConfig, evaluate_features

The underlying implementations live under :mod:`feature_eval.use_cases` and
:mod:`feature_eval.components`.
"""

from __future__ import annotations

from feature_eval.components.data.dataset import Dataset
from feature_eval.components.evaluation.summary import FeatureEvaluationSummary
from feature_eval.contracts.run_config import FeatureEvalRunConfig
from feature_eval.core.progress import ProgressCallback
from feature_eval.io.report import export_fold_histories, summary_to_frame, summary_to_tsv
from feature_eval.use_cases.feature_evaluation.run import evaluate_features

__all__ = [
    "Dataset",
    "FeatureEvalRunConfig",
    "FeatureEvaluationSummary",
    "ProgressCallback",
    "evaluate_features",
    "export_fold_histories",
    "summary_to_frame",
    "summary_to_tsv",
]
