from __future__ import annotations

"""Dataset and materialized dataset views.

A :class:`Dataset` is read-only from the engine's point of view. Reordering
(for example shuffling group order) produces another :class:`Dataset` that
shares the raw arrays and only carries a new row index; rows are copied only
when :meth:`Dataset.get_subset` materializes a :class:`DatasetView` for a fold.

The feature storage kind (dense ndarray or scipy sparse matrix) is resolved
once, when the dataset is created, and travels with every view so column
selection never has to re-inspect the matrix type.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

import numpy as np
from scipy import sparse

from feature_eval.contracts.types import FeatureStorage, ObjectsOrder
from feature_eval.errors import FeatureEvalConfigError


@dataclass(frozen=True)
class FeaturesLayout:
    """Global feature indices plus the mask of ignored ones.

    Indices never shift: ignoring a feature only flips its mask entry, so
    feature sets and feature strengths always refer to the original columns.
    """

    feature_count: int
    ignored: np.ndarray

    @classmethod
    def full(cls, feature_count: int, ignored: Iterable[int] = ()) -> "FeaturesLayout":
        mask = np.zeros(int(feature_count), dtype=bool)
        idx = np.asarray(list(ignored), dtype=int)
        if idx.size:
            if idx.min() < 0 or idx.max() >= feature_count:
                raise FeatureEvalConfigError(
                    f"Ignored feature index out of range [0, {feature_count}): {idx.tolist()}"
                )
            mask[idx] = True
        return cls(feature_count=int(feature_count), ignored=mask)

    def with_ignored(self, features: Iterable[int]) -> "FeaturesLayout":
        mask = self.ignored.copy()
        idx = np.asarray(list(features), dtype=int)
        if idx.size:
            if idx.min() < 0 or idx.max() >= self.feature_count:
                raise FeatureEvalConfigError(
                    f"Feature index out of range [0, {self.feature_count}): {idx.tolist()}"
                )
            mask[idx] = True
        return FeaturesLayout(feature_count=self.feature_count, ignored=mask)

    def kept_indices(self) -> np.ndarray:
        return np.flatnonzero(~self.ignored)

    def expand(self, values: Sequence[float]) -> np.ndarray:
        """Scatter per-kept-feature values back to a full-length vector."""
        out = np.zeros(self.feature_count, dtype=float)
        kept = self.kept_indices()
        vals = np.asarray(values, dtype=float).ravel()
        if vals.shape[0] != kept.shape[0]:
            raise ValueError(
                f"Expected {kept.shape[0]} values for the kept features, got {vals.shape[0]}."
            )
        out[kept] = vals
        return out


def _select_rows(matrix: Any, rows: np.ndarray, storage: FeatureStorage) -> Any:
    if storage == "sparse":
        return matrix[rows]
    return np.ascontiguousarray(matrix[rows])


def _select_columns(matrix: Any, cols: np.ndarray, storage: FeatureStorage) -> Any:
    if storage == "sparse":
        return matrix[:, cols]
    return np.ascontiguousarray(matrix[:, cols])


def _non_constant_columns(matrix: Any, storage: FeatureStorage) -> np.ndarray:
    n_rows = matrix.shape[0]
    if n_rows == 0:
        return np.zeros(matrix.shape[1], dtype=bool)
    if storage == "sparse":
        hi = np.asarray(matrix.max(axis=0).todense()).ravel()
        lo = np.asarray(matrix.min(axis=0).todense()).ravel()
        return hi > lo
    return np.nanmax(matrix, axis=0) > np.nanmin(matrix, axis=0)


class DatasetView:
    """Materialized rows of a dataset with a (possibly restricted) feature layout."""

    def __init__(
        self,
        *,
        features: Any,
        target: np.ndarray,
        layout: FeaturesLayout,
        storage: FeatureStorage,
        object_indices: np.ndarray,
        group_id: Optional[np.ndarray] = None,
        timestamp: Optional[np.ndarray] = None,
        non_constant: Optional[np.ndarray] = None,
    ) -> None:
        self.features = features
        self.target = target
        self.layout = layout
        self.storage = storage
        self.object_indices = object_indices
        self.group_id = group_id
        self.timestamp = timestamp
        self._non_constant = non_constant

    @property
    def object_count(self) -> int:
        return int(self.target.shape[0])

    @property
    def nbytes(self) -> int:
        if self.storage == "sparse":
            m = self.features
            size = int(m.data.nbytes + m.indices.nbytes + m.indptr.nbytes)
        else:
            size = int(self.features.nbytes)
        return size + int(self.target.nbytes)

    def with_ignored_features(self, features: Iterable[int]) -> "DatasetView":
        """Return a view over the same rows with additional ignored features."""
        return DatasetView(
            features=self.features,
            target=self.target,
            layout=self.layout.with_ignored(features),
            storage=self.storage,
            object_indices=self.object_indices,
            group_id=self.group_id,
            timestamp=self.timestamp,
            non_constant=self._non_constant,
        )

    def non_constant_features(self) -> np.ndarray:
        if self._non_constant is None:
            self._non_constant = _non_constant_columns(self.features, self.storage)
        return self._non_constant

    def available_features(self) -> np.ndarray:
        """Boolean mask of features that are neither ignored nor constant here."""
        return self.non_constant_features() & ~self.layout.ignored

    def has_available_features(self) -> bool:
        return bool(self.available_features().any())

    def training_matrix(self) -> Any:
        """Feature matrix with ignored columns dropped (column order preserved)."""
        return _select_columns(self.features, self.layout.kept_indices(), self.storage)


class Dataset:
    """An ordered collection of objects, each belonging to a contiguous group."""

    def __init__(
        self,
        features: Any,
        target: Any,
        *,
        group_id: Optional[Any] = None,
        timestamp: Optional[Any] = None,
        ignored_features: Iterable[int] = (),
        objects_order: ObjectsOrder = "undefined",
        feature_names: Optional[Sequence[str]] = None,
    ) -> None:
        if sparse.issparse(features):
            self._features = sparse.csr_matrix(features, dtype=float)
            self.storage: FeatureStorage = "sparse"
        else:
            arr = np.asarray(features, dtype=float)
            if arr.ndim != 2:
                raise FeatureEvalConfigError(f"features must be 2D; got shape {arr.shape}.")
            self._features = arr
            self.storage = "dense"

        self._target = np.asarray(target).ravel()
        n = int(self._features.shape[0])
        if self._target.shape[0] != n:
            raise FeatureEvalConfigError(
                f"features and target length mismatch: {n} vs {self._target.shape[0]}"
            )

        self._group_id = None if group_id is None else np.asarray(group_id).ravel()
        self._timestamp = None if timestamp is None else np.asarray(timestamp, dtype=np.int64).ravel()
        for name, arr in (("group_id", self._group_id), ("timestamp", self._timestamp)):
            if arr is not None and arr.shape[0] != n:
                raise FeatureEvalConfigError(f"{name} length mismatch: {arr.shape[0]} vs {n}")

        self.layout = FeaturesLayout.full(self._features.shape[1], ignored_features)
        self.objects_order = objects_order
        self.feature_names = list(feature_names) if feature_names is not None else None
        self._rows: Optional[np.ndarray] = None
        self._group_bounds = self._compute_group_bounds()

    @classmethod
    def from_frame(
        cls,
        df: Any,
        *,
        target: str,
        group_id: Optional[str] = None,
        timestamp: Optional[str] = None,
        ignored_features: Iterable[int] = (),
    ) -> "Dataset":
        """Build a dataset from a pandas DataFrame; all other columns are features."""
        aux = {c for c in (target, group_id, timestamp) if c is not None}
        feature_cols = [c for c in df.columns if c not in aux]
        return cls(
            df[feature_cols].to_numpy(dtype=float),
            df[target].to_numpy(),
            group_id=None if group_id is None else df[group_id].to_numpy(),
            timestamp=None if timestamp is None else df[timestamp].to_numpy(),
            ignored_features=ignored_features,
            feature_names=[str(c) for c in feature_cols],
        )

    # --- row indexing ------------------------------------------------------

    def _raw_rows(self, indices: Optional[np.ndarray] = None) -> np.ndarray:
        base = self._rows if self._rows is not None else np.arange(self._target.shape[0])
        return base if indices is None else base[indices]

    def _column(self, arr: Optional[np.ndarray]) -> Optional[np.ndarray]:
        if arr is None:
            return None
        return arr if self._rows is None else arr[self._rows]

    def _compute_group_bounds(self) -> np.ndarray:
        gid = self.group_id
        n = self.object_count
        if gid is None:
            return np.arange(n + 1, dtype=np.int64)
        if n == 0:
            return np.zeros(1, dtype=np.int64)
        starts = np.flatnonzero(np.r_[True, gid[1:] != gid[:-1]])
        if np.unique(gid).shape[0] != starts.shape[0]:
            raise FeatureEvalConfigError(
                "Objects of one group must be consecutive in the dataset"
            )
        return np.r_[starts, n].astype(np.int64)

    # --- properties --------------------------------------------------------

    @property
    def object_count(self) -> int:
        return int(self._raw_rows().shape[0])

    @property
    def group_count(self) -> int:
        return int(self._group_bounds.shape[0] - 1)

    @property
    def feature_count(self) -> int:
        return int(self.layout.feature_count)

    @property
    def target(self) -> np.ndarray:
        return self._column(self._target)

    @property
    def group_id(self) -> Optional[np.ndarray]:
        return self._column(self._group_id)

    @property
    def timestamp(self) -> Optional[np.ndarray]:
        return self._column(self._timestamp)

    @property
    def has_group_id(self) -> bool:
        return self._group_id is not None

    @property
    def has_timestamp(self) -> bool:
        return self._timestamp is not None

    @property
    def group_bounds(self) -> np.ndarray:
        return self._group_bounds

    @property
    def group_sizes(self) -> np.ndarray:
        return np.diff(self._group_bounds)

    def group_timestamps(self) -> np.ndarray:
        """Timestamp of the first object of every group, in group order."""
        ts = self.timestamp
        if ts is None:
            raise FeatureEvalConfigError("Dataset has no timestamps")
        return ts[self._group_bounds[:-1]]

    # --- derived datasets --------------------------------------------------

    def objects_of_groups(self, groups: Iterable[int]) -> np.ndarray:
        """Object indices of the given groups, in the given group order."""
        g = np.asarray(list(groups), dtype=np.int64)
        if g.size == 0:
            return np.zeros(0, dtype=np.int64)
        begins = self._group_bounds[g]
        ends = self._group_bounds[g + 1]
        return np.concatenate([np.arange(b, e, dtype=np.int64) for b, e in zip(begins, ends)])

    def with_target(self, target: Any) -> "Dataset":
        """Same objects and order, different target (e.g. encoded class labels)."""
        new_target = np.asarray(target).ravel()
        if new_target.shape[0] != self.object_count:
            raise FeatureEvalConfigError("target length mismatch")
        out = self.reorder(np.arange(self.object_count, dtype=np.int64))
        full = np.empty(self._target.shape[0], dtype=new_target.dtype)
        full[out._raw_rows()] = new_target
        out._target = full
        return out

    def reorder(self, order: np.ndarray) -> "Dataset":
        """Dataset sharing raw arrays, with objects in the given order."""
        out = object.__new__(Dataset)
        out.__dict__.update(self.__dict__)
        out._rows = self._raw_rows(np.asarray(order, dtype=np.int64))
        out._group_bounds = out._compute_group_bounds()
        return out

    def shuffle_groups(self, rng: np.random.Generator) -> "Dataset":
        """Permute whole groups with the given generator; objects stay grouped."""
        perm = rng.permutation(self.group_count)
        return self.reorder(self.objects_of_groups(perm))

    def get_subset(self, indices: np.ndarray) -> DatasetView:
        """Materialize the given objects (indices in the current order)."""
        idx = np.asarray(indices, dtype=np.int64)
        raw = self._raw_rows(idx)
        gid = None if self._group_id is None else self._group_id[raw]
        ts = None if self._timestamp is None else self._timestamp[raw]
        return DatasetView(
            features=_select_rows(self._features, raw, self.storage),
            target=self._target[raw],
            layout=self.layout,
            storage=self.storage,
            object_indices=idx,
            group_id=gid,
            timestamp=ts,
        )
