from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .types import CvTypeName


class CvPartitionModel(BaseModel):
    # Shuffle group order before every fold range; also allows wrapping
    # requests that exceed one disjoint partition.
    shuffle: bool = True
    type: CvTypeName = "Inverted"
    # When set, the dataset is split into exactly this many folds and the
    # fold window options (size/offset) are ignored.
    fold_count: Optional[int] = Field(default=None, gt=0)
