"""Feature-evaluation exception types.

Callers can catch :class:`FeatureEvalError` for anything raised by the engine,
or one of the narrower classes below. Each class also derives from the builtin
exception that best matches its meaning, so plain ``except ValueError`` keeps
working for configuration problems.
"""

from __future__ import annotations

from typing import Optional


class FeatureEvalError(Exception):
    """Base class for all feature-evaluation errors."""


class FeatureEvalConfigError(FeatureEvalError, ValueError):
    """Raised when options or dataset layout make the evaluation impossible."""


class FoldCapacityError(FeatureEvalError, ValueError):
    """Raised when the dataset cannot host the requested folds.

    ``max_fold_count`` is the number of disjoint folds still available after the
    requested offset, ``max_fold_size`` the largest fold size that would fit all
    requested folds into one partition.
    """

    def __init__(
        self,
        message: str,
        *,
        max_fold_count: Optional[int] = None,
        max_fold_size: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.max_fold_count = max_fold_count
        self.max_fold_size = max_fold_size


class InternalConsistencyError(FeatureEvalError, RuntimeError):
    """Raised when an internal invariant is broken (a defect, never recovered)."""


class SnapshotMismatchError(FeatureEvalError, RuntimeError):
    """Raised when a persisted snapshot does not belong to the current run."""
