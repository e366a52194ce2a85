from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .types import FstrTypeName


class OutputModel(BaseModel):
    train_dir: str = "feature_eval_info"
    save_snapshot: bool = False
    snapshot_file: str = "feature_eval_snapshot.bkp"
    # seconds between two trainer snapshots
    snapshot_interval: float = Field(default=600.0, ge=0.0)
    fstr_type: Optional[FstrTypeName] = None
    regular_fstr: bool = False
    # feature evaluation needs metric values on every iteration
    metric_period: int = Field(default=1, gt=0)


class SystemModel(BaseModel):
    thread_count: int = -1
    # e.g. "512mb", "4gb"; None means unlimited
    used_ram_limit: Optional[str] = None
