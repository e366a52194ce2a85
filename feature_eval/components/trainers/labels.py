from __future__ import annotations

from typing import Tuple

import numpy as np


def encode_labels(y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Encode labels to 0..K-1 and return (classes, y_encoded)."""

    y_arr = np.asarray(y).ravel()
    classes, y_enc = np.unique(y_arr, return_inverse=True)
    return classes, y_enc.astype(int)
