from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from feature_eval.components.interfaces import FeatureStrengthCalculator, Metric, Trainer
from feature_eval.components.splitters.types import FoldData
from feature_eval.contracts.run_config import FeatureEvalRunConfig
from feature_eval.core.progress import ProgressCallback

from .callbacks import FeatureEvaluationCallbacks


@dataclass
class FoldContext:
    """Everything known about one trained fold model."""

    fold_idx: int
    training_data: FoldData
    random_seed: int
    full_model: Optional[Any] = None
    metric_values_on_train: List[float] = field(default_factory=list)
    # iterations x metrics
    metric_values_on_test: List[List[float]] = field(default_factory=list)


@dataclass
class EvaluationContext:
    """Collaborators shared by every fold range of one evaluation."""

    cfg: FeatureEvalRunConfig
    trainer: Trainer
    metrics: Sequence[Metric]
    callbacks: FeatureEvaluationCallbacks
    feature_strength: Optional[FeatureStrengthCalculator] = None
    used_ram_limit: Optional[int] = None
    progress: Optional[ProgressCallback] = None
    progress_label: str = "feature evaluation"
    units_done: int = 0

    def tick(self, units: int = 1) -> None:
        self.units_done += units
        if self.progress is not None:
            self.progress.update(current=self.units_done, label=self.progress_label)
