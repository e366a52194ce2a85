from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from feature_eval.errors import InternalConsistencyError


@dataclass(frozen=True, order=True)
class ResumeProgress:
    """Position of one training unit; units are trained in increasing order."""

    fold_range_begin: int
    feature_set_index: int
    is_test: bool
    fold_index: int

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.fold_range_begin, self.feature_set_index, int(self.is_test), self.fold_index)


class ResumeTracker:
    """Decides which training units a resumed run may skip.

    ``restore`` records the unit that was in progress when the snapshot was
    written and arms the tracker. While armed, every unit that precedes the
    restored one is reported as already summarized. ``consume`` disarms the
    tracker; it is called once the first unit after the restored position has
    picked up the snapshot.
    """

    def __init__(self) -> None:
        self.current: Optional[ResumeProgress] = None
        self.restored: Optional[ResumeProgress] = None
        self.armed = False

    def arm(self) -> None:
        self.armed = True

    def consume(self) -> None:
        self.armed = False

    def restore(self, progress: Optional[ResumeProgress]) -> None:
        self.restored = progress
        self.current = progress

    def mark(self, progress: ResumeProgress) -> None:
        self.current = progress

    def should_skip(self, progress: ResumeProgress) -> bool:
        if not self.armed:
            return False
        if self.restored is None:
            raise InternalConsistencyError(
                "No fold range begin, or feature set index, or baseline flag, or fold index in snapshot"
            )
        return progress.as_tuple() < self.restored.as_tuple()
