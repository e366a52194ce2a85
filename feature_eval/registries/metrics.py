from __future__ import annotations

from typing import Callable, List

from feature_eval.components.interfaces import Metric
from feature_eval.registries.base import Registry

MetricFactory = Callable[[], Metric]

_METRICS: Registry[str, MetricFactory] = Registry(_name="metrics")

_BUILTINS_LOADED = False


def register_metric(name: str) -> Callable[[MetricFactory], MetricFactory]:
    return _METRICS.register(name)


def _ensure_builtins() -> None:
    global _BUILTINS_LOADED
    if _BUILTINS_LOADED:
        return
    from feature_eval.registries.builtins import metrics as _  # noqa: F401
    _BUILTINS_LOADED = True


def make_metric(name: str) -> Metric:
    _ensure_builtins()
    factory = _METRICS.try_get(name)
    if factory is None:
        raise ValueError(f"Unknown metric: {name!r} (known: {', '.join(list_metrics())})")
    return factory()


def list_metrics() -> List[str]:
    _ensure_builtins()
    return sorted(_METRICS.keys())
