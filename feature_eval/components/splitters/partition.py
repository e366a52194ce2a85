from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from feature_eval.components.data.dataset import Dataset
from feature_eval.components.splitters.types import FoldSubsets
from feature_eval.contracts.types import CvTypeName, SamplingUnitName
from feature_eval.errors import FeatureEvalConfigError, FoldCapacityError, InternalConsistencyError

logger = logging.getLogger(__name__)


def sampling_unit_count(dataset: Dataset, unit: SamplingUnitName) -> int:
    return dataset.object_count if unit == "Object" else dataset.group_count


def bucket_by_units(unit_sizes: np.ndarray, fold_size: int) -> List[np.ndarray]:
    """Contiguous buckets of ``fold_size`` units over an ordered list of groups.

    ``unit_sizes[i]`` is how many sampling units group ``i`` contributes (1 when
    splitting by groups, its object count when splitting by objects). A group is
    never split; the bucket of a group is decided by the units preceding it. At
    most ``max(1, total_units // fold_size)`` buckets are formed and the remainder
    goes to the last one. A group larger than ``fold_size`` can step over a
    bucket boundary; such empty buckets are dropped. Returns positions into
    ``unit_sizes``.
    """
    if fold_size <= 0:
        raise FeatureEvalConfigError("Fold size must be positive integer")
    sizes = np.asarray(unit_sizes, dtype=np.int64)
    total = int(sizes.sum())
    count = max(1, total // int(fold_size))
    starts = np.cumsum(sizes) - sizes
    bucket = np.minimum(starts // int(fold_size), count - 1)
    buckets = [np.flatnonzero(bucket == b) for b in range(count)]
    return [b for b in buckets if b.size]


def _feasible_fold_size(unit_sizes: np.ndarray, fold_size: int, needed: int) -> Optional[int]:
    """Largest fold size below ``fold_size`` yielding ``needed`` buckets, if any."""
    if len(unit_sizes) < needed:
        return None
    for size in range(int(fold_size) - 1, 0, -1):
        if len(bucket_by_units(unit_sizes, size)) >= needed:
            return size
    return None


def take_fold_window(
    unit_sizes: np.ndarray,
    *,
    fold_size: int,
    offset: int,
    fold_count: int,
) -> List[np.ndarray]:
    """Buckets ``[offset, offset + fold_count)`` of one partition.

    Raises :class:`FoldCapacityError` when large groups leave fewer buckets
    than the window needs.
    """
    buckets = bucket_by_units(unit_sizes, fold_size)
    if offset + fold_count > len(buckets):
        feasible = _feasible_fold_size(unit_sizes, fold_size, offset + fold_count)
        hint = (
            f"Please decrease fold size to at most {feasible}."
            if feasible is not None
            else "No fold size fits them; request fewer folds."
        )
        raise FoldCapacityError(
            f"Groups larger than the fold size leave only {len(buckets)} non-empty fold(s), "
            f"but folds [{offset}, {offset + fold_count}) were requested. {hint}",
            max_fold_count=max(0, len(buckets) - offset),
            max_fold_size=feasible,
        )
    return take_middle_elements(buckets, offset, fold_count)


def split_groups(group_count: int, fold_count: int) -> List[np.ndarray]:
    """``fold_count`` nearly equal contiguous partitions of the group order."""
    if fold_count <= 0:
        raise FeatureEvalConfigError("Fold count must be positive integer")
    if group_count < fold_count:
        raise FeatureEvalConfigError(
            f"Cannot split {group_count} groups into {fold_count} folds"
        )
    return [np.asarray(p, dtype=np.int64) for p in np.array_split(np.arange(group_count), fold_count)]


def take_middle_elements(subsets: List[np.ndarray], offset: int, count: int) -> List[np.ndarray]:
    """Return ``subsets[offset:offset + count]``; the slice must fit."""
    if offset + count > len(subsets):
        raise InternalConsistencyError(
            f"Dataset permutation logic failed: window [{offset}, {offset + count}) "
            f"exceeds {len(subsets)} folds"
        )
    return list(subsets[offset:offset + count])


def _unit_sizes(dataset: Dataset, groups: np.ndarray, unit: SamplingUnitName) -> np.ndarray:
    if unit == "Object":
        return dataset.group_sizes[groups]
    return np.ones(groups.shape[0], dtype=np.int64)


def partition_cv_folds(
    dataset: Dataset,
    *,
    fold_size: int,
    fold_size_unit: SamplingUnitName,
    offset: int,
    fold_count: int,
    cv_type: CvTypeName = "Inverted",
    explicit_fold_count: Optional[int] = None,
) -> FoldSubsets:
    """Grouped cross-validation split of one fold range.

    Test subsets are disjoint group buckets (or ``explicit_fold_count`` equal
    partitions, in which case the window options are ignored); each train
    subset is the complement of its test subset. ``"Inverted"`` is the only
    accepted ``cv_type`` and names this layout: the test buckets of one range
    never overlap, so every object is tested at most once per range.
    """
    if cv_type != "Inverted":
        raise FeatureEvalConfigError("Feature evaluation requires inverted cross-validation")

    all_groups = np.arange(dataset.group_count, dtype=np.int64)
    if explicit_fold_count is not None:
        test_groups = split_groups(dataset.group_count, explicit_fold_count)
    else:
        test_groups = take_fold_window(
            _unit_sizes(dataset, all_groups, fold_size_unit),
            fold_size=fold_size,
            offset=offset,
            fold_count=fold_count,
        )

    train, test = [], []
    for groups in test_groups:
        in_test = np.zeros(dataset.group_count, dtype=bool)
        in_test[groups] = True
        test.append(dataset.objects_of_groups(groups))
        train.append(dataset.objects_of_groups(all_groups[~in_test]))
    return FoldSubsets(train=train, test=test)


def find_quantile_timestamp(group_timestamps: np.ndarray, quantile: float) -> int:
    ts = np.sort(np.asarray(group_timestamps, dtype=np.int64))
    if ts.size == 0:
        raise FeatureEvalConfigError("Dataset is empty")
    pos = min(int(np.floor(ts.shape[0] * quantile)), ts.shape[0] - 1)
    quantile_timestamp = int(ts[pos])
    logger.info("Quantile timestamp %d", quantile_timestamp)
    return quantile_timestamp


def _require_time_split_columns(dataset: Dataset) -> None:
    if not dataset.has_group_id:
        raise FeatureEvalConfigError("Timesplit feature evaluation requires dataset with groups")
    if not dataset.has_timestamp:
        raise FeatureEvalConfigError("Timesplit feature evaluation requires dataset with timestamps")


def _split_at_quantile(dataset: Dataset, quantile: float) -> tuple[np.ndarray, np.ndarray]:
    """Group positions before the quantile timestamp and from it on."""
    _require_time_split_columns(dataset)
    group_ts = dataset.group_timestamps()
    boundary = find_quantile_timestamp(group_ts, quantile)
    # groups at the boundary are test-side; the population count uses this same split
    before = np.flatnonzero(group_ts < boundary)
    after = np.flatnonzero(group_ts >= boundary)
    if before.size == 0:
        raise FeatureEvalConfigError(
            f"No groups precede the quantile timestamp {boundary}; increase time_split_quantile"
        )
    return before, after


def time_split_population(dataset: Dataset, quantile: float, unit: SamplingUnitName) -> int:
    """Sampling units that fall on the train side of the quantile timestamp."""
    before, _ = _split_at_quantile(dataset, quantile)
    return int(_unit_sizes(dataset, before, unit).sum())


def partition_time_split_folds(
    dataset: Dataset,
    *,
    fold_size: int,
    fold_size_unit: SamplingUnitName,
    quantile: float,
    offset: int,
    fold_count: int,
) -> FoldSubsets:
    """Time-ordered split of one fold range.

    Groups before the quantile timestamp are bucketed into train windows; the
    remaining groups go into one test subset shared by all folds of the range.
    """
    if fold_size <= 0:
        raise FeatureEvalConfigError("Fold size must be positive integer")

    before, after = _split_at_quantile(dataset, quantile)

    window = take_fold_window(
        _unit_sizes(dataset, before, fold_size_unit),
        fold_size=fold_size,
        offset=offset,
        fold_count=fold_count,
    )
    train_groups = [before[b] for b in window]

    test_subset = dataset.objects_of_groups(after)
    return FoldSubsets(
        train=[dataset.objects_of_groups(g) for g in train_groups],
        test=[test_subset for _ in train_groups],
    )
