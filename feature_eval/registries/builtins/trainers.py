"""Built-in trainer registrations."""

from __future__ import annotations

from feature_eval.components.trainers.gradient_boosting import GradientBoostingTrainer
from feature_eval.registries.trainers import register_trainer


@register_trainer("gradient_boosting")
def _gradient_boosting(**kwargs):
    return GradientBoostingTrainer(**kwargs)
