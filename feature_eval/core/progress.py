from __future__ import annotations

"""Progress reporting for long evaluations.

A run is counted in training units (one model per feature set, role and
fold). Skipped units, e.g. when resuming, count as done.
"""

from typing import Optional, Protocol


class ProgressCallback(Protocol):
    def init(self, *, total: int, label: Optional[str] = None) -> None:
        """Called once with the number of units the run consists of."""
        ...

    def update(self, *, current: int, label: Optional[str] = None) -> None:
        """Called after every finished or skipped unit with the running count."""
        ...

    def finalize(self, *, label: Optional[str] = None) -> None:
        """Called when the run ends, also when it fails."""
        ...
