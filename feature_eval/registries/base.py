from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, List, Optional, TypeVar

K = TypeVar("K")
V = TypeVar("V")


@dataclass
class Registry(Generic[K, V]):
    """Named factories, filled by decorating them with :meth:`register`.

        _METRICS: Registry[str, MetricFactory] = Registry(_name="metrics")

        @_METRICS.register("RMSE")
        def _rmse() -> Metric:
            ...

    A later registration under the same key replaces the earlier one.
    """

    _items: Dict[K, V] = field(default_factory=dict)
    _name: str = "registry"

    def register(self, key: K) -> Callable[[V], V]:
        def deco(value: V) -> V:
            self._items[key] = value
            return value

        return deco

    def try_get(self, key: K) -> Optional[V]:
        return self._items.get(key)

    def keys(self) -> List[K]:
        return list(self._items)
