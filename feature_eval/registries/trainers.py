from __future__ import annotations

from typing import Any, Callable, List

from feature_eval.components.interfaces import Trainer
from feature_eval.registries.base import Registry

TrainerFactory = Callable[..., Trainer]

_TRAINERS: Registry[str, TrainerFactory] = Registry(_name="trainers")

_BUILTINS_LOADED = False


def register_trainer(name: str) -> Callable[[TrainerFactory], TrainerFactory]:
    return _TRAINERS.register(name.lower())


def _ensure_builtins() -> None:
    global _BUILTINS_LOADED
    if _BUILTINS_LOADED:
        return
    from feature_eval.registries.builtins import trainers as _  # noqa: F401
    _BUILTINS_LOADED = True


def make_trainer(name: str = "gradient_boosting", **kwargs: Any) -> Trainer:
    _ensure_builtins()
    factory = _TRAINERS.try_get(str(name).lower())
    if factory is None:
        raise ValueError(f"Unknown trainer: {name!r}")
    return factory(**kwargs)


def list_trainers() -> List[str]:
    _ensure_builtins()
    return sorted(_TRAINERS.keys())
