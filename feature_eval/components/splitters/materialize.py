from __future__ import annotations

import re
import warnings
from typing import Callable, List, Optional

from joblib import Parallel, delayed

from feature_eval.components.data.dataset import Dataset, DatasetView
from feature_eval.components.splitters.types import FoldData, FoldsData, FoldSubsets
from feature_eval.errors import FeatureEvalConfigError

_SIZE_UNITS = {"": 1, "b": 1, "kb": 1024, "mb": 1024**2, "gb": 1024**3, "tb": 1024**4}


def parse_memory_size(description: Optional[str]) -> Optional[int]:
    """Parse sizes like ``"512mb"`` or ``"4 GB"`` into bytes (None = unlimited)."""
    if description is None:
        return None
    m = re.fullmatch(r"\s*(\d+(?:\.\d+)?)\s*([kmgt]?b?)\s*", str(description).lower())
    if m is None:
        raise FeatureEvalConfigError(f"Cannot parse memory size {description!r}")
    return int(float(m.group(1)) * _SIZE_UNITS[m.group(2)])


def _materialize(dataset: Dataset, indices, ram_limit: Optional[int], what: str) -> DatasetView:
    view = dataset.get_subset(indices)
    if ram_limit is not None and view.nbytes > ram_limit:
        warnings.warn(
            f"{what} takes {view.nbytes} bytes, above its share of the RAM limit ({ram_limit} bytes).",
            ResourceWarning,
        )
    return view


def create_fold_data(
    dataset: Dataset,
    subsets: FoldSubsets,
    *,
    used_ram_limit: Optional[int] = None,
    n_jobs: int = -1,
    separate_test: bool = False,
) -> FoldsData:
    """Materialize train and test views of every fold of one range.

    Each view is one independent task; all ``2 * fold_count`` tasks run on a
    bounded thread pool and share the RAM budget evenly. The call returns once
    every task is done.
    """
    fold_count = subsets.fold_count
    per_task_limit = None
    if used_ram_limit is not None and fold_count > 0:
        per_task_limit = used_ram_limit // (2 * fold_count)

    tasks: List[Callable[[], DatasetView]] = []
    for fold_idx in range(fold_count):
        tasks.append(
            lambda i=fold_idx: _materialize(dataset, subsets.train[i], per_task_limit, f"Train subset of fold {i}")
        )
        tasks.append(
            lambda i=fold_idx: _materialize(dataset, subsets.test[i], per_task_limit, f"Test subset of fold {i}")
        )

    views = Parallel(n_jobs=n_jobs, prefer="threads")(delayed(task)() for task in tasks)
    learn_views = views[0::2]
    test_views = views[1::2]

    if separate_test:
        return FoldsData(
            folds=[FoldData(learn=v) for v in learn_views],
            storage=dataset.storage,
            views_self=False,
            test_views=list(test_views),
        )
    return FoldsData(
        folds=[FoldData(learn=lv, test=tv) for lv, tv in zip(learn_views, test_views)],
        storage=dataset.storage,
        views_self=True,
    )
