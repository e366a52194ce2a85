from __future__ import annotations

from typing import Any, List, Tuple

import numpy as np

from feature_eval.components.data.dataset import DatasetView


class ImpurityFeatureStrength:
    """Impurity importances of a fitted tree ensemble, in percent.

    ``calc`` returns the importances of the features the model was trained on
    as ``(value, feature_index)`` pairs sorted from strongest, plus the same
    values scattered over the full feature layout (ignored features get 0).
    """

    def calc(self, model: Any, view: DatasetView) -> Tuple[List[Tuple[float, int]], np.ndarray]:
        raw = np.asarray(model.feature_importances(), dtype=float)
        total = raw.sum()
        values = raw * (100.0 / total) if total > 0 else raw
        kept = view.layout.kept_indices()
        pairs = sorted(
            ((float(v), int(f)) for v, f in zip(values, kept)),
            key=lambda p: (-p[0], p[1]),
        )
        return pairs, view.layout.expand(values)
