from .callbacks import FeatureEvaluationCallbacks
from .progress import ResumeProgress, ResumeTracker
from .run import evaluate_features

__all__ = [
    "FeatureEvaluationCallbacks",
    "ResumeProgress",
    "ResumeTracker",
    "evaluate_features",
]
