from __future__ import annotations

from typing import ClassVar, List, Optional

from pydantic import BaseModel, Field

from .types import LossFunctionName, MetricName


class BoostingModel(BaseModel):
    """Gradient boosting options forwarded to the trainer."""

    loss_function: LossFunctionName = "RMSE"
    iterations: int = Field(default=100, gt=0)
    learning_rate: float = Field(default=0.1, gt=0.0)
    depth: int = Field(default=3, gt=0)
    subsample: float = Field(default=1.0, gt=0.0, le=1.0)
    min_data_in_leaf: int = Field(default=1, gt=0)

    # first metric drives best-iteration selection; defaults to the loss
    eval_metric: Optional[MetricName] = None
    custom_metrics: List[MetricName] = Field(default_factory=list)

    classification_losses: ClassVar[frozenset] = frozenset({"Logloss", "MultiClass"})

    @property
    def task(self) -> str:
        return "classification" if self.loss_function in self.classification_losses else "regression"
