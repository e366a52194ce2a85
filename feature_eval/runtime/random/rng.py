from __future__ import annotations
import hashlib
import numpy as np
from numpy.random import Generator


class RngManager:
    """
    Single source of truth for randomness of one evaluation.
    Creates named, order-independent child seeds by hashing:
      child_seed(name)       -> stable int seed
    Fold ranges get their own seed so a range can be replayed in isolation.
    """
    def __init__(self, seed: int | None):
        self._root = 0 if seed is None else int(seed) & 0xFFFFFFFFFFFFFFFF

    def _mix(self, name: str) -> int:
        # Stable across runs and Python versions
        h = hashlib.sha256(f"{self._root}:{name}".encode("utf-8")).digest()
        # 32 bits keeps seeds valid for sklearn's random_state
        return int.from_bytes(h[:4], "little", signed=False)

    def child_seed(self, name: str) -> int:
        return self._mix(name)

    def fold_range_seeds(self, n: int) -> list[int]:
        return [self.child_seed(f"fold_range_{i}") for i in range(n)]


def draw_seed(rng: Generator) -> int:
    """Draw one 32-bit seed from a generator (per-fold training seeds)."""
    return int(rng.integers(0, 2**32 - 1, dtype=np.uint64))
