from __future__ import annotations

"""Fold layout contracts.

Splitting is done in three steps with a stable payload for each:

- :class:`FoldRangeSegment` - one independent (re)partition of the dataset and
  the slice of its disjoint folds the evaluation uses,
- :class:`FoldSubsets` - train/test object indices for the folds of a range,
- :class:`FoldsData` - materialized train/test views, ready for training.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from feature_eval.components.data.dataset import DatasetView
from feature_eval.contracts.types import FeatureStorage
from feature_eval.errors import InternalConsistencyError


@dataclass(frozen=True)
class FoldRangeSegment:
    """One fold range: folds ``[offset_in_range, offset_in_range + fold_count)``
    of the partition seeded with ``random_seed``.

    ``fold_range_begin`` is the absolute index of the range's first disjoint
    fold (``fold_range_index * disjoint_fold_count``).
    """

    fold_range_index: int
    fold_range_begin: int
    fold_size: int
    offset_in_range: int
    fold_count: int
    random_seed: int


@dataclass(frozen=True)
class FoldSubsets:
    """Train/test object indices for every fold of one range."""

    train: List[np.ndarray]
    test: List[np.ndarray]

    def __post_init__(self) -> None:
        if len(self.train) != len(self.test):
            raise InternalConsistencyError("Number of train and test subsets do not match")

    @property
    def fold_count(self) -> int:
        return len(self.train)


@dataclass
class FoldData:
    """Training data of one fold: the learn view and (optionally) its eval view."""

    learn: DatasetView
    test: Optional[DatasetView] = None

    def with_ignored_features(self, features: List[int]) -> "FoldData":
        return FoldData(
            learn=self.learn.with_ignored_features(features),
            test=None if self.test is None else self.test.with_ignored_features(features),
        )


@dataclass
class FoldsData:
    """Materialized folds of one range.

    When ``views_self`` is true the test view of every fold lives inside
    ``folds[i].test`` and the trainer evaluates it while growing the model.
    Otherwise the test views are kept in ``test_views`` and applied to the
    finished model afterwards.
    """

    folds: List[FoldData]
    storage: FeatureStorage
    views_self: bool = True
    test_views: List[DatasetView] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.views_self and len(self.test_views) != len(self.folds):
            raise InternalConsistencyError("Number of train and test subsets do not match")

    @property
    def fold_count(self) -> int:
        return len(self.folds)

    def test_view(self, fold_idx: int) -> Optional[DatasetView]:
        """Separately held test view of a fold (None when the fold evaluates itself)."""
        if self.views_self:
            return None
        return self.test_views[fold_idx]

    def with_ignored_features(self, features: List[int]) -> "FoldsData":
        return FoldsData(
            folds=[f.with_ignored_features(features) for f in self.folds],
            storage=self.storage,
            views_self=self.views_self,
            test_views=[v.with_ignored_features(features) for v in self.test_views],
        )
