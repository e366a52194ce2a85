"""Small key -> factory registries for metrics and trainers.

Adding an implementation means registering it; the evaluation code only ever
asks a registry for it by name.
"""

from .metrics import list_metrics, make_metric, register_metric
from .trainers import list_trainers, make_trainer, register_trainer
