from __future__ import annotations

"""Fold window planning.

An evaluation asks for ``fold_count`` folds starting at ``offset``. One
partition of the dataset only yields ``disjoint_fold_count`` non-overlapping
folds, so larger requests are served by several independently reshuffled
partitions ("fold ranges"), each contributing a contiguous slice of its folds.
"""

import math
from typing import List, Optional, Tuple

from feature_eval.components.splitters.types import FoldRangeSegment
from feature_eval.errors import FeatureEvalConfigError, FoldCapacityError
from feature_eval.runtime.random.rng import RngManager


def count_disjoint_folds(
    population: int,
    *,
    fold_size: int = 0,
    relative_fold_size: float = 0.0,
) -> Tuple[int, int]:
    """Return ``(absolute_fold_size, disjoint_fold_count)``.

    ``population`` is the number of sampling units (objects or groups) that may
    end up in a fold. An explicit ``fold_size`` wins over ``relative_fold_size``.
    """
    if fold_size > 0:
        absolute_fold_size = int(fold_size)
    else:
        absolute_fold_size = int(round(relative_fold_size * population))
        if absolute_fold_size <= 0:
            bound = 1.0 / population if population > 0 else float("inf")
            raise FeatureEvalConfigError(
                f"Relative fold size must be greater than {bound:g} so that size of each fold is "
                f"non-zero (relative fold size too small for population of {population})"
            )
    disjoint_fold_count = max(1, int(population) // absolute_fold_size)
    return absolute_fold_size, disjoint_fold_count


def check_fold_capacity(
    population: int,
    *,
    disjoint_fold_count: int,
    offset: int,
    fold_count: int,
    shuffle: bool,
) -> None:
    """Fail when the request needs more than one partition but shuffling is off."""
    if disjoint_fold_count >= offset + fold_count or shuffle:
        return
    max_fold_count = max(0, disjoint_fold_count - offset)
    max_fold_size = int(population) // (offset + fold_count)
    raise FoldCapacityError(
        "Dataset contains too few objects or groups to evaluate features without shuffling: "
        f"only {max_fold_count} disjoint fold(s) remain after offset {offset}, "
        f"but {fold_count} were requested. Please decrease fold size to at most {max_fold_size}, "
        "or enable dataset shuffling in cross-validation (cv.shuffle=True).",
        max_fold_count=max_fold_count,
        max_fold_size=max_fold_size,
    )


def plan_fold_ranges(
    *,
    absolute_fold_size: int,
    disjoint_fold_count: int,
    offset: int,
    fold_count: int,
    rngm: RngManager,
    population: Optional[int] = None,
    shuffle: bool = True,
) -> List[FoldRangeSegment]:
    """Split the global ``(offset, fold_count)`` window into fold range segments.

    The first segment starts inside range ``offset // disjoint_fold_count``; the
    following ones start at fold 0 of the next range. Seeds come from
    ``rngm`` so the same top-level seed always yields the same partitions.
    """
    if fold_count <= 0:
        raise FeatureEvalConfigError("Fold count must be positive integer")
    if population is not None:
        check_fold_capacity(
            population,
            disjoint_fold_count=disjoint_fold_count,
            offset=offset,
            fold_count=fold_count,
            shuffle=shuffle,
        )

    seeds = rngm.fold_range_seeds(math.ceil((offset + fold_count) / disjoint_fold_count))

    segments: List[FoldRangeSegment] = []
    range_idx = offset // disjoint_fold_count
    offset_in_range = offset % disjoint_fold_count
    count = min(disjoint_fold_count - offset_in_range, fold_count)
    processed = 0
    while processed < fold_count:
        segments.append(
            FoldRangeSegment(
                fold_range_index=range_idx,
                fold_range_begin=range_idx * disjoint_fold_count,
                fold_size=absolute_fold_size,
                offset_in_range=offset_in_range,
                fold_count=count,
                random_seed=seeds[range_idx],
            )
        )
        processed += count
        range_idx += 1
        offset_in_range = 0
        count = min(disjoint_fold_count, fold_count - processed)
    return segments
