from __future__ import annotations

import os
from typing import Optional

from feature_eval.components.interfaces import Trainer
from feature_eval.contracts.output_configs import OutputModel
from feature_eval.registries.trainers import make_trainer


def snapshot_path(output: OutputModel) -> str:
    if os.path.isabs(output.snapshot_file):
        return output.snapshot_file
    return os.path.join(output.train_dir, output.snapshot_file)


def make_default_trainer(output: OutputModel, *, class_count: Optional[int] = None) -> Trainer:
    """Gradient boosting trainer writing snapshots when ``output.save_snapshot`` is on."""
    return make_trainer(
        "gradient_boosting",
        class_count=class_count,
        snapshot_path=snapshot_path(output) if output.save_snapshot else None,
        snapshot_interval=output.snapshot_interval,
    )
